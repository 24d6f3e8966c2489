# payloadproc

Building blocks for a payload processor that sits beside an Envoy proxy as an
external processor for inference traffic: a configuration schema and loader
that turn YAML into plugin pipelines, helpers for building ext_proc replies,
error-to-HTTP mapping, an in-memory model store, TLS certificate handling and
logging setup.

## Modules

| Module | Purpose |
| --- | --- |
| `payloadproc.configapi` | The configuration schema: `PayloadProcessorConfig`, `PluginSpec`, `Profile`, `ProfilePlugins`, `PluginRef`, `PluginRefList`, and `ConfigDecodeError`. |
| `payloadproc.loader` | Turns configuration text into plugin instances and pipeline profiles: `load_configuration`, `PluginRegistry`, `PluginHandle`, `Config`, `PipelineProfile`, `ConfigError`. |
| `payloadproc.envoy` | ext_proc response objects and helpers: header lookup, header mutations, and splitting bodies into streamed chunks. |
| `payloadproc.errors` | `InferenceError`, `GrpcStatusError`, `canonical_code` and `build_err_response`. |
| `payloadproc.datastore` | `InMemoryDatastore`, a thread-safe store of `Model` objects, each with its own `AttributeMap`. |
| `payloadproc.certs` | `load_x509_key_pair`, `create_self_signed_certificate`, `Certificate` and `CertReloader`. |
| `payloadproc.observability` | Verbosity levels, `level_name`, `init_setup_logging`, `init_logging`, `LoggingOptions` and `help_msg_with_stability`. |
| `payloadproc.kubemeta` | `GKNN`, a fully qualified Kubernetes resource reference. |

## Configuration

A configuration lists the plugins to create and the profiles that run them:

```yaml
apiVersion: llm-d.ai/v1alpha1
kind: PayloadProcessorConfig
plugins:
- type: my-request-plugin
  parameters:
    fieldName: model
- name: responder
  type: my-response-plugin
profiles:
- name: default
  plugins:
    request:
    - pluginRef: my-request-plugin
    response:
    - pluginRef: responder
notificationSources: []
```

Decoding is strict. `apiVersion` must be `llm-d.ai/v1alpha1` and `kind` must
be `PayloadProcessorConfig`; unknown fields and values of the wrong type raise
`ConfigDecodeError`. `PayloadProcessorConfig.from_dict` decodes an already
parsed document. A plugin's `parameters` are kept as compact JSON text with
sorted keys and handed to its factory as they are.

`load_raw_configuration(text)` accepts YAML or JSON as `bytes` or `str`. Empty
text selects the built-in default returned by `load_default_config()`, which
names two plugin types, `body-field-to-header` and `base-model-to-header`, in
a profile called `default`. A plugin without a `name` is given its `type` as
its name.

`load_configuration(text, handle, registry)` then:

* builds every plugin with the factory registered for its type; plugin names
  must be unique, each plugin needs a type, and the type must be registered;
* builds every profile; a profile needs a name, a `plugins` section, and at
  least one request or response reference;
* resolves the `notificationSources` references.

Any problem in these steps raises `ConfigError` (a decode failure is raised as
`ConfigError` too, chained to its cause). The result is a `Config` whose
`profiles` maps profile names to `PipelineProfile` objects, and whose
`notification_sources` lists the resolved source plugins.

Factories are registered with a `PluginRegistry`. A factory is called with the
plugin's name, its parameters (JSON text or `None`) and the `PluginHandle`,
and returns the plugin instance; any exception it raises becomes a
`ConfigError`.

```python
from payloadproc.loader import PluginHandle, PluginRegistry, load_configuration


class ModelHeader:
    def __init__(self, name, parameters):
        self.name = name
        self.parameters = parameters

    def process_request(self, cycle_state, request):
        ...


registry = PluginRegistry()
registry.register("my-request-plugin", lambda name, params, handle: ModelHeader(name, params))

handle = PluginHandle()
config = load_configuration(config_text, handle, registry)
profile = config.profiles["default"]
```

References are checked by shape: request plugins must have a
`process_request(cycle_state, request)` method (`RequestProcessor`), response
plugins a `process_response(cycle_state, response)` method
(`ResponseProcessor`), and notification sources `start()` and `stop()`
methods (`NotificationSource`). `PluginHandle.plugin(name)` looks a plugin up
by name and `PluginHandle.all_plugins()` returns them all in the order they
were added.

## Envoy replies

Envoy limits the size of each streamed chunk, so bodies are split into pieces
of at most `BODY_BYTE_LIMIT` (62,000) bytes. When asked, only the last piece
carries end-of-stream, and an empty body still yields a single chunk:

```python
from payloadproc.envoy import add_streamed_response_body, build_chunked_body_responses

chunks = build_chunked_body_responses(body, True)        # list of CommonResponse
responses = add_streamed_response_body([], body)          # response-body ProcessingResponses
```

Header helpers:

* `get_header_value(header)` returns a `HeaderValue`'s raw value when set,
  otherwise its text value.
* `extract_header_value(headers, key)` finds a header case-insensitively in an
  iterable of `HeaderValue` and returns `""` when it is absent.
* `generate_headers_mutation(mapping)` turns a name-to-value mapping into
  `HeaderValueOption` objects carrying raw values.

`ProcessingResponse` pairs a `ResponseKind` with a `HeadersResponse`,
`BodyResponse` or `ImmediateResponse`.

## Errors

```python
from payloadproc.errors import InferenceError, build_err_response, canonical_code

err = InferenceError("BadRequest", "invalid model name")
str(err)              # 'inference error: BadRequest - invalid model name'
canonical_code(err)   # 'BadRequest'
reply = build_err_response(err)
reply.response.status  # 400
```

The codes `BadRequest`, `Unauthorized`, `Forbidden`, `NotFound`,
`ResourceExhausted`, `Internal` and `ServiceUnavailable` map to HTTP 400, 401,
403, 404, 429, 500 and 503, with the error text as the body. Any other error,
including `ModelServerError`, `Unknown` and exceptions that are not
`InferenceError`, makes `build_err_response` raise `GrpcStatusError`.
`canonical_code` returns `Unknown` for anything that is not an
`InferenceError`, `None` included.

## Models

```python
from payloadproc.datastore import InMemoryDatastore

store = InMemoryDatastore()
model = store.get_or_create_model("llama-3")
model.attributes.put("running-requests", 3)
model.attributes.get("running-requests")   # 3
store.models()                             # ['llama-3']
```

Repeated calls return the same `Model`. Putting `None` into an `AttributeMap`
is ignored, and `get` returns `None` for a missing key. Deleting a model and
creating it again gives a fresh one; deleting a missing model does nothing.

## Certificates

`create_self_signed_certificate()` makes a ten-year RSA-4096 server
certificate for the organisation "Inference Ext".
`load_x509_key_pair(cert_file, key_file)` reads a PEM chain and its private
key and raises `ValueError` when they do not match. Both return a
`Certificate` with `chain`, `leaf`, `private_key`, `cert_pem` and `key_pem`.

`CertReloader(path, initial)` watches a directory holding `tls.crt` and
`tls.key`. After file changes settle (0.25 seconds by default, set with
`debounce=`) it reloads the pair; if the new pair cannot be loaded, the
previous certificate is kept. It raises `FileNotFoundError` if the directory
does not exist.

```python
from payloadproc.certs import CertReloader, load_x509_key_pair

initial = load_x509_key_pair("certs/tls.crt", "certs/tls.key")
with CertReloader("certs", initial) as reloader:
    current = reloader.get()
```

## Logging

Levels are numbered as verbosity levels: 0 info, 1 warn, 2 error, and `-n` for
verbosity `n`. `level_name` writes -1 to -3 as `info`, -4 as `debug`, and -5
and below as `trace`. The constants `DEFAULT`, `VERBOSE`, `DEBUG` and `TRACE`
are 2, 3, 4 and 5.

`init_setup_logging()` installs a JSON handler on the root logger, writing to
standard error at info level. `LoggingOptions` adds `-v`, `--zap-log-level`
and `--zap-devel` to an `argparse` parser; `complete(namespace)` derives the
level from `-v` unless `--zap-log-level` was given, `validate()` resets a
negative verbosity to `DEFAULT`, and `init_logging(options)` applies the
chosen level to the root logger.

```python
import argparse
from payloadproc.observability import LoggingOptions, init_logging, init_setup_logging

init_setup_logging()
options = LoggingOptions()
parser = options.add_flags(argparse.ArgumentParser())
options.complete(parser.parse_args(["-v", "4"]))
options.validate()
init_logging(options)
```

`help_msg_with_stability("requests served", "ALPHA")` returns
`"[ALPHA] requests served"`.

## What this package does not do

This is a library, not a running service. It has no command, no ext_proc gRPC
server, no health-check server and no metrics endpoint. It ships no plugin
implementations: the plugin types named by the default configuration
(`body-field-to-header`, `base-model-to-header`) must be registered with a
`PluginRegistry` by the caller before that configuration can be loaded. The
loader builds profiles and notification sources only; `Config.profile_picker`,
`pre_processors` and `post_processors` are left empty. There is no tracing
setup.