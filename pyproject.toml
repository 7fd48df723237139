[build-system]
requires = ["hatchling>=1.18"]
build-backend = "hatchling.build"

[project]
name = "ubox"
version = "0.1.0"
description = "Tagged binary messages (blob/blobmsg), JSON and shell conversion, and small data-structure helpers"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "blob",
    "blobmsg",
    "tlv",
    "json",
    "avl",
    "base64",
    "shell",
]
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
    "Topic :: Software Development :: Libraries",
    "Topic :: File Formats :: JSON",
    "Topic :: Utilities",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest>=7"]

[project.scripts]
jshn = "ubox.jshn:main"

[tool.hatch.build.targets.wheel]
packages = ["ubox"]

[tool.hatch.build.targets.sdist]
include = ["ubox", "tests", "README.md", "pyproject.toml"]

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
