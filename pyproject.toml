[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mpcnode"
version = "0.1.0"
description = "Threshold key generation, signing and consensus node over BLS12-381 G1 with a pure Python curve implementation"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "mpc",
    "dkg",
    "threshold",
    "frost",
    "bls12-381",
    "secret-sharing",
    "gossip",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: Security :: Cryptography",
    "Topic :: System :: Distributed Computing",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
mpc-node = "mpcnode.main:main"

[tool.hatch.build.targets.wheel]
packages = ["mpcnode"]

[tool.hatch.build.targets.sdist]
include = ["mpcnode", "tests", "pyproject.toml", "README.md"]

[tool.pytest.ini_options]
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
