[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pipeclean"
version = "0.1.0"
description = "Streaming sanitizer that scrubs sensitive values from MySQL dumps and JSON documents."
requires-python = ">=3.10"
keywords = ["sanitize", "scrub", "anonymize", "mysql", "dump", "pii", "markov"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
    "Topic :: Security",
    "Topic :: Text Processing :: Filters",
]
dependencies = [
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
pipeclean = "pipeclean.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["pipeclean"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
