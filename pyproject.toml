[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tinyunix"
version = "0.1.0"
description = "A small Unix-like teaching system in Python: processes, paging, locks, system calls, a shell parser and user-space helpers"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "operating-system",
    "unix",
    "kernel",
    "scheduler",
    "paging",
    "shell",
    "teaching",
    "simulation",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Operating System",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
tinyunix-wc = "tinyunix.wc:main"
tinyunix-rm = "tinyunix.rm:main"

[tool.hatch.build.targets.wheel]
packages = ["tinyunix"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
