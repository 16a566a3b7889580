[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "flinkop"
version = "0.1.0"
description = "FlinkApplication resource types, a type registry and integration-test helpers for a Kubernetes Flink operator"
requires-python = ">=3.10"
keywords = ["flink", "kubernetes", "operator", "custom-resource", "integration-testing"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
]
dependencies = [
    "requests",
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[tool.hatch.build.targets.wheel]
packages = ["flinkop"]

[tool.pytest.ini_options]
addopts = "-ra"
