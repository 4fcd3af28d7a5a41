[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gatekeep"
version = "1.0.0"
description = "Request-side building blocks for web applications: validation, signed cookie sessions, template loading and helpers."
requires-python = ">=3.10"
keywords = [
    "web",
    "validation",
    "session",
    "cookies",
    "templates",
    "jinja2",
    "object-pool",
]
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
    "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "regex",
    "jinja2",
    "markupsafe",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["gatekeep"]

[tool.hatch.build.targets.sdist]
include = [
    "gatekeep",
    "tests",
]

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
