[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "payloadproc"
version = "0.1.0"
description = "Building blocks for an inference payload processor: plugin configuration, Envoy ext_proc response helpers, a model datastore and TLS certificate reloading."
requires-python = ">=3.10"
keywords = [
    "envoy",
    "ext_proc",
    "inference",
    "gateway",
    "llm",
    "payload",
    "plugins",
    "tls",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Proxy Servers",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "pyyaml>=6.0",
    "cryptography>=41.0",
    "watchdog>=3.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
]

[tool.hatch.build.targets.wheel]
packages = ["payloadproc"]

[tool.hatch.build.targets.sdist]
include = [
    "payloadproc",
    "tests",
    "README.md",
]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
