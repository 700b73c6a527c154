[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gobuildkit"
version = "0.1.0"
description = "Build-tool building blocks: a content-addressed artifact cache, directory-tree hashing, stable key ordering and Go source import scanning."
requires-python = ">=3.10"
dependencies = []
keywords = ["build", "cache", "hashing", "dirhash", "imports", "build-tags"]
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
    "Topic :: Software Development :: Build Tools",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["gobuildkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
