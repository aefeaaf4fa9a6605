[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "zimread"
version = "0.4.0"
description = "Read, inspect and extract ZIM archives"
requires-python = ">=3.10"
dependencies = [
    "zstandard",
    "tqdm",
]
keywords = ["zim", "openzim", "wikipedia", "archive", "parser", "extraction"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: File Formats",
    "Topic :: System :: Archiving",
]

[project.optional-dependencies]
test = [
    "pytest",
    "zstandard",
]

[project.scripts]
extract-zim = "zimread.extract:main"
ipfs-link = "zimread.ipfs_link:main"
zim-info = "zimread.info:main"

[tool.hatch.build.targets.wheel]
packages = ["zimread"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
