[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "orderdesk"
version = "0.1.0"
description = "Small HTTP service for recording shop orders and their drop-shipping details in a SQL database"
requires-python = ">=3.10"
keywords = ["orders", "drop-shipping", "rest", "flask", "sqlalchemy"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: Office/Business",
]
dependencies = [
    "flask",
    "sqlalchemy>=2.0",
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
orderdesk = "orderdesk.app:main"

[tool.hatch.build.targets.wheel]
packages = ["orderdesk"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]
