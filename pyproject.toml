[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "govm"
version = "0.1.0"
description = "Install, switch and remove Go toolchain versions from the command line"
requires-python = ">=3.10"
dependencies = []
keywords = ["go", "golang", "version-manager", "toolchain", "cli"]
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
    "Topic :: Software Development :: Build Tools",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
govm = "govm.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["govm"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
