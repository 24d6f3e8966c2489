"""Load the payload processor configuration and build its plugins and profiles."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, runtime_checkable

import yaml

from payloadproc.configapi import (
    API_VERSION,
    KIND,
    ConfigDecodeError,
    PayloadProcessorConfig,
    PluginRef,
    PluginSpec,
    Profile,
    ProfilePlugins,
)

logger = logging.getLogger(__name__)

BODY_FIELD_TO_HEADER_PLUGIN_TYPE = "body-field-to-header"
BASE_MODEL_TO_HEADER_PLUGIN_TYPE = "base-model-to-header"

_DEFAULT_BODY_FIELD_PARAMETERS = '{"fieldName": "model", "headerName": "X-Gateway-Model-Name"}'


class ConfigError(ValueError):
    """Raised when the configuration cannot be loaded or its plugins cannot be built."""


@runtime_checkable
class RequestProcessor(Protocol):
    """A plugin that processes incoming requests."""

    def process_request(self, cycle_state: Any, request: Any) -> None: ...


@runtime_checkable
class ResponseProcessor(Protocol):
    """A plugin that processes responses."""

    def process_response(self, cycle_state: Any, response: Any) -> None: ...


@runtime_checkable
class NotificationSource(Protocol):
    """A plugin that is started with the server and stopped when it ends."""

    def start(self) -> None: ...

    def stop(self) -> None: ...


PluginFactory = Callable[[str, Optional[str], "PluginHandle"], Any]


class PluginRegistry:
    """Maps plugin type names to factories that build plugin instances."""

    def __init__(self) -> None:
        self._factories: dict[str, PluginFactory] = {}

    def register(self, plugin_type: str, factory: PluginFactory) -> None:
        """Register (or replace) the factory for a plugin type."""
        self._factories[plugin_type] = factory

    def get(self, plugin_type: str) -> PluginFactory | None:
        """Return the factory for a plugin type, or None if it is not registered."""
        return self._factories.get(plugin_type)

    def __contains__(self, plugin_type: object) -> bool:
        return plugin_type in self._factories


class PluginHandle:
    """Holds the instantiated plugins by name, and shared resources they may use."""

    def __init__(self, datastore: Any = None) -> None:
        self.datastore = datastore
        self._plugins: dict[str, Any] = {}

    def add_plugin(self, name: str, plugin: Any) -> None:
        """Record a plugin instance under its name."""
        self._plugins[name] = plugin

    def plugin(self, name: str) -> Any | None:
        """Return the plugin called name, or None."""
        return self._plugins.get(name)

    def all_plugins(self) -> list[Any]:
        """Return every instantiated plugin, in insertion order."""
        return list(self._plugins.values())


@dataclass
class PipelineProfile:
    """The request and response plugins that make up one pipeline."""

    request_plugins: list[Any] = field(default_factory=list)
    response_plugins: list[Any] = field(default_factory=list)


@dataclass
class Config:
    """The final configuration built from the raw document."""

    pre_processors: list[Any] = field(default_factory=list)
    profile_picker: Any = None
    profiles: dict[str, PipelineProfile] = field(default_factory=dict)
    post_processors: list[Any] = field(default_factory=list)
    notification_sources: list[Any] = field(default_factory=list)


def load_default_config() -> PayloadProcessorConfig:
    """Return the configuration used when none is given."""
    return PayloadProcessorConfig(
        api_version=API_VERSION,
        kind=KIND,
        plugins=[
            PluginSpec(type=BODY_FIELD_TO_HEADER_PLUGIN_TYPE, parameters=_DEFAULT_BODY_FIELD_PARAMETERS),
            PluginSpec(type=BASE_MODEL_TO_HEADER_PLUGIN_TYPE),
        ],
        profiles=[
            Profile(
                name="default",
                plugins=ProfilePlugins(
                    request=[
                        PluginRef(BODY_FIELD_TO_HEADER_PLUGIN_TYPE),
                        PluginRef(BASE_MODEL_TO_HEADER_PLUGIN_TYPE),
                    ]
                ),
            )
        ],
    )


def apply_raw_config_defaults(raw_config: PayloadProcessorConfig) -> None:
    """Name every unnamed plugin after its type."""
    for spec in raw_config.plugins:
        if not spec.name:
            spec.name = spec.type


def load_raw_configuration(config_bytes: bytes | str | None) -> PayloadProcessorConfig:
    """Decode a YAML or JSON document, or use the default when it is empty."""
    if config_bytes:
        try:
            text = config_bytes.decode("utf-8") if isinstance(config_bytes, (bytes, bytearray)) else config_bytes
            raw_config = PayloadProcessorConfig.from_dict(yaml.safe_load(text))
        except (yaml.YAMLError, ConfigDecodeError, UnicodeDecodeError) as exc:
            logger.error("failed to decode configuration JSON/YAML: %s", exc)
            raise ConfigError(f"failed to decode configuration JSON/YAML: {exc}") from exc
        logger.info("Loaded raw configuration: %s", raw_config)
    else:
        logger.info("A configuration wasn't specified. A default one is being used.")
        raw_config = load_default_config()
        logger.info("Default raw configuration used: %s", raw_config)

    apply_raw_config_defaults(raw_config)
    return raw_config


def instantiate_plugins(
    configured_plugins: Sequence[PluginSpec], handle: PluginHandle, registry: PluginRegistry
) -> None:
    """Build every configured plugin with its registered factory and add it to the handle."""
    if not configured_plugins:
        raise ConfigError("one or more plugins must be defined")

    seen: set[str] = set()
    for spec in configured_plugins:
        if not spec.type:
            raise ConfigError(f"plugin '{spec.name}' is missing a type")
        if spec.name in seen:
            raise ConfigError(f"duplicate plugin name '{spec.name}'")
        seen.add(spec.name)

        factory = registry.get(spec.type)
        if factory is None:
            raise ConfigError(f"plugin type '{spec.type}' is not registered")
        try:
            instance = factory(spec.name, spec.parameters, handle)
        except Exception as exc:
            raise ConfigError(f"failed to create plugin '{spec.name}' (type: {spec.type}): {exc}") from exc
        handle.add_plugin(spec.name, instance)


def _resolve(handle: PluginHandle, ref: PluginRef, kind: type, kind_name: str) -> Any:
    instance = handle.plugin(ref.plugin_ref)
    if instance is None:
        raise ConfigError(f"there is no plugin named {ref.plugin_ref}")
    if not isinstance(instance, kind):
        raise ConfigError(f"the plugin named {ref.plugin_ref} is not a {kind_name}")
    return instance


def build_profiles(raw_profiles: Sequence[Profile], handle: PluginHandle) -> dict[str, PipelineProfile]:
    """Resolve each profile's plugin references into pipeline profiles keyed by name."""
    if not raw_profiles:
        raise ConfigError("at least one profile must be specified")

    profiles: dict[str, PipelineProfile] = {}
    for raw in raw_profiles:
        if not raw.name:
            raise ConfigError("a profile was specified without a name")
        if raw.plugins is None:
            raise ConfigError(f"the profile {raw.name} must have a Plugins section")
        if not raw.plugins.request and not raw.plugins.response:
            raise ConfigError(
                f"the profile {raw.name} must have one or both of the Request and Response sections"
            )
        profiles[raw.name] = PipelineProfile(
            request_plugins=[
                _resolve(handle, ref, RequestProcessor, "RequestProcessor") for ref in raw.plugins.request
            ],
            response_plugins=[
                _resolve(handle, ref, ResponseProcessor, "ResponseProcessor") for ref in raw.plugins.response
            ],
        )
    return profiles


def build_datalayer(refs: Sequence[PluginRef], handle: PluginHandle) -> list[Any]:
    """Resolve references to notification-source plugins."""
    return [_resolve(handle, ref, NotificationSource, "NotificationSource") for ref in refs]


def load_configuration(
    config_bytes: bytes | str | None, handle: PluginHandle, registry: PluginRegistry
) -> Config:
    """Decode the configuration, build its plugins, and assemble profiles and sources."""
    raw_config = load_raw_configuration(config_bytes)

    try:
        instantiate_plugins(raw_config.plugins, handle, registry)
    except ConfigError:
        logger.error("failed to instantiate one or more plugins")
        raise
    try:
        profiles = build_profiles(raw_config.profiles, handle)
    except ConfigError:
        logger.error("failed to load one or more profiles")
        raise
    try:
        sources = build_datalayer(raw_config.notification_sources, handle)
    except ConfigError:
        logger.error("failed to load one or more notification sources")
        raise

    return Config(profiles=profiles, notification_sources=sources)