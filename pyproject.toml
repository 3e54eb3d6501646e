[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "zlogpy"
version = "0.1.0"
description = "Structured JSON log events, console pretty-printing, non-blocking ring-buffer writers and an HTTP response recorder"
requires-python = ">=3.10"
dependencies = []
keywords = ["logging", "structured-logging", "json", "console", "ring-buffer"]
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
    "Topic :: System :: Logging",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["zlogpy"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
