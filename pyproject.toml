[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "utopia"
version = "0.1.0"
description = "YAML file storage for specs, change requests, conversations and drafts, plus a wrapper around the claude command-line tool"
requires-python = ">=3.10"
keywords = ["specs", "yaml", "claude", "change-requests", "storage"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development",
]
dependencies = [
    "ruamel-yaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["utopia"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
