[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ethstore"
version = "0.1.5"
description = "Chunked data files and key-value shards for a blob storage node, with chunk masking, blob packing and a command-line utility."
requires-python = ">=3.10"
dependencies = [
    "pycryptodome",
]
keywords = [
    "ethereum",
    "storage",
    "blob",
    "eip-4844",
    "data-file",
    "shard",
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
    "Topic :: System :: Filesystems",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
ethstore = "ethstore.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["ethstore"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
