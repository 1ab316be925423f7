[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tinymsg"
version = "0.1.0"
description = "MessagePack encoding and decoding on plain byte strings and buffered streams"
requires-python = ">=3.10"
dependencies = []
keywords = ["messagepack", "msgpack", "serialization", "binary", "encoding"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["tinymsg"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
