[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "autograf"
version = "0.1.0"
description = "Generate Grafana dashboards from Prometheus metrics"
requires-python = ">=3.10"
keywords = ["grafana", "prometheus", "dashboard", "metrics", "monitoring", "openmetrics"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]
dependencies = [
    "requests",
    "python-slugify",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
autograf = "autograf.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["autograf"]

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
ignore_missing_imports = true
