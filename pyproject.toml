[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "blockmatmul"
version = "0.1.0"
description = "Block-distributed dense matrix multiplication schemes, including Cannon's algorithm, over an in-process message-passing world"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "matrix multiplication",
    "cannon",
    "block decomposition",
    "parallel algorithms",
    "message passing",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Education",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Mathematics",
    "Topic :: System :: Distributed Computing",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
blockmatmul-gendata = "blockmatmul.gendata:main"
blockmatmul-row-col = "blockmatmul.row_col:main"
blockmatmul-row-row = "blockmatmul.row_row:main"
blockmatmul-col-row = "blockmatmul.col_row:main"
blockmatmul-col-col = "blockmatmul.col_col:main"
blockmatmul-cannon = "blockmatmul.cannon:main"
blockmatmul-cannon-shifted = "blockmatmul.cannon_shifted:main"
blockmatmul-cannon-irregular = "blockmatmul.cannon_irregular:main"

[tool.hatch.build.targets.wheel]
packages = ["blockmatmul"]

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
