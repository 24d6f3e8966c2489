"""Schema of the payload processor configuration document (group llm-d.ai, version v1alpha1)."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

GROUP_NAME = "llm-d.ai"
VERSION = "v1alpha1"
API_VERSION = f"{GROUP_NAME}/{VERSION}"
KIND = "PayloadProcessorConfig"


class ConfigDecodeError(ValueError):
    """Raised when a configuration document does not match the schema."""


def _format_list(items: list[Any]) -> str:
    return "[" + " ".join(str(item) for item in items) + "]"


def _mapping(value: Any, where: str, allowed: frozenset[str]) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ConfigDecodeError(f"{where}: expected an object, got {type(value).__name__}")
    unknown = sorted((key for key in value if key not in allowed), key=str)
    if unknown:
        raise ConfigDecodeError(f'{where}: unknown field "{unknown[0]}"')
    return value


def _string(value: Any, where: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ConfigDecodeError(f"{where}: expected a string, got {type(value).__name__}")
    return value


def _items(value: Any, where: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigDecodeError(f"{where}: expected a list, got {type(value).__name__}")
    return value


@dataclass
class PluginRef:
    """A reference, by name, to an instantiated plugin."""

    plugin_ref: str = ""

    def __str__(self) -> str:
        return f"{{PluginRef: {self.plugin_ref}}}"

    @classmethod
    def _decode(cls, data: Any, where: str) -> PluginRef:
        data = _mapping(data, where, frozenset({"pluginRef"}))
        return cls(plugin_ref=_string(data.get("pluginRef"), f"{where}.pluginRef"))


def _refs(value: Any, where: str) -> list[PluginRef]:
    return [PluginRef._decode(item, f"{where}[{pos}]") for pos, item in enumerate(_items(value, where))]


@dataclass
class PluginRefList:
    """An ordered list of plugin references."""

    plugins: list[PluginRef] = field(default_factory=list)

    def __str__(self) -> str:
        contents = f"Plugins: {_format_list(self.plugins)}" if self.plugins else ""
        return "{" + contents + "}"

    @classmethod
    def _decode(cls, data: Any, where: str) -> PluginRefList | None:
        if data is None:
            return None
        data = _mapping(data, where, frozenset({"plugins"}))
        return cls(plugins=_refs(data.get("plugins"), f"{where}.plugins"))


@dataclass
class ProfilePlugins:
    """Plugin references used for request and response processing."""

    request: list[PluginRef] = field(default_factory=list)
    response: list[PluginRef] = field(default_factory=list)

    @classmethod
    def _decode(cls, data: Any, where: str) -> ProfilePlugins | None:
        if data is None:
            return None
        data = _mapping(data, where, frozenset({"request", "response"}))
        return cls(
            request=_refs(data.get("request"), f"{where}.request"),
            response=_refs(data.get("response"), f"{where}.response"),
        )


@dataclass
class Profile:
    """A named pipeline profile."""

    name: str = ""
    plugins: ProfilePlugins | None = None

    def __str__(self) -> str:
        parts = [f"Name: {self.name}"]
        request = self.plugins.request if self.plugins else []
        response = self.plugins.response if self.plugins else []
        if request or response:
            sections = []
            if request:
                sections.append(f"Request: {_format_list(request)}")
            if response:
                sections.append(f"Response: {_format_list(response)}")
            parts.append("Plugins: {" + ", ".join(sections) + "}")
        return "{" + ", ".join(parts) + "}"

    @classmethod
    def _decode(cls, data: Any, where: str) -> Profile:
        data = _mapping(data, where, frozenset({"name", "plugins"}))
        return cls(
            name=_string(data.get("name"), f"{where}.name"),
            plugins=ProfilePlugins._decode(data.get("plugins"), f"{where}.plugins"),
        )


@dataclass
class PluginSpec:
    """Describes a plugin to instantiate; parameters are kept as raw JSON text."""

    type: str = ""
    name: str = ""
    parameters: str | None = None

    def __str__(self) -> str:
        parts = []
        if self.name:
            parts.append(f"Name: {self.name}")
        parts.append(f"Type: {self.type}")
        if self.parameters:
            parts.append(f"Parameters: {self.parameters}")
        return "{" + ", ".join(parts) + "}"

    @classmethod
    def _decode(cls, data: Any, where: str) -> PluginSpec:
        data = _mapping(data, where, frozenset({"name", "type", "parameters"}))
        raw = data.get("parameters")
        parameters = None
        if raw is not None:
            try:
                parameters = json.dumps(raw, separators=(",", ":"), sort_keys=True)
            except (TypeError, ValueError) as exc:
                raise ConfigDecodeError(f"{where}.parameters: {exc}") from exc
        return cls(
            type=_string(data.get("type"), f"{where}.type"),
            name=_string(data.get("name"), f"{where}.name"),
            parameters=parameters,
        )


_TOP_LEVEL_FIELDS = frozenset(
    {
        "apiVersion",
        "kind",
        "plugins",
        "preProcessing",
        "profilePicker",
        "profiles",
        "postProcessing",
        "notificationSources",
    }
)


@dataclass
class PayloadProcessorConfig:
    """The raw configuration document, before any plugins are built."""

    api_version: str = API_VERSION
    kind: str = KIND
    plugins: list[PluginSpec] = field(default_factory=list)
    pre_processing: PluginRefList | None = None
    profile_picker: PluginRef | None = None
    profiles: list[Profile] = field(default_factory=list)
    post_processing: PluginRefList | None = None
    notification_sources: list[PluginRef] = field(default_factory=list)

    def __str__(self) -> str:
        contents = f"Plugins: {_format_list(self.plugins)}"
        if self.pre_processing is not None:
            contents += f", PreProcessing: {self.pre_processing}"
        if self.profile_picker is not None:
            contents += f", ProfilePicker: {self.profile_picker}"
        contents += f", Profiles: {_format_list(self.profiles)}"
        if self.post_processing is not None:
            contents += f", PostProcessing: {self.post_processing}"
        if self.notification_sources:
            contents += f", NotificationSources: {_format_list(self.notification_sources)}"
        return "{" + contents + "}"

    @classmethod
    def from_dict(cls, data: Any) -> PayloadProcessorConfig:
        """Decode a parsed document strictly; unknown fields and wrong types are errors."""
        data = _mapping(data, "config", _TOP_LEVEL_FIELDS)
        kind = _string(data.get("kind"), "config.kind")
        api_version = _string(data.get("apiVersion"), "config.apiVersion")
        if not kind:
            raise ConfigDecodeError("Object 'Kind' is missing")
        if not api_version:
            raise ConfigDecodeError("Object 'apiVersion' is missing")
        if kind != KIND or api_version != API_VERSION:
            raise ConfigDecodeError(f'no kind "{kind}" is registered for version "{api_version}"')

        picker = data.get("profilePicker")
        return cls(
            api_version=api_version,
            kind=kind,
            plugins=[
                PluginSpec._decode(item, f"config.plugins[{pos}]")
                for pos, item in enumerate(_items(data.get("plugins"), "config.plugins"))
            ],
            pre_processing=PluginRefList._decode(data.get("preProcessing"), "config.preProcessing"),
            profile_picker=None if picker is None else PluginRef._decode(picker, "config.profilePicker"),
            profiles=[
                Profile._decode(item, f"config.profiles[{pos}]")
                for pos, item in enumerate(_items(data.get("profiles"), "config.profiles"))
            ],
            post_processing=PluginRefList._decode(data.get("postProcessing"), "config.postProcessing"),
            notification_sources=_refs(data.get("notificationSources"), "config.notificationSources"),
        )