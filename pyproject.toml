[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pixl"
version = "0.1.0"
description = "Pixel-art books: an HTTP server that stores and draws on them, an MCP tool bridge, and a live viewer"
requires-python = ">=3.10"
keywords = ["pixel-art", "sprites", "animation", "drawing", "mcp", "server-sent-events"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Environment :: Web Environment",
    "Framework :: AsyncIO",
    "Intended Audience :: Developers",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Graphics :: Editors :: Raster-Based",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]
dependencies = [
    "aiohttp>=3.9",
    "pygame>=2.5",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
    "pytest-asyncio>=0.23",
]

[project.scripts]
pixl-server = "pixl.server.app:main"
pixl-mcp = "pixl.mcp_server:main"
pixl-viewer = "pixl.viewer.app:main"

[tool.hatch.build.targets.wheel]
packages = ["pixl"]

[tool.hatch.build.targets.sdist]
include = ["pixl", "tests", "pyproject.toml"]

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
ignore_missing_imports = true
