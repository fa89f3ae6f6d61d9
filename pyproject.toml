[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "copperrt"
version = "0.1.0"
description = "Task-graph runtime toolkit: RON configuration graphs, execution planning, copper lists, robot clocks and monitoring"
requires-python = ">=3.10"
dependencies = []
keywords = ["robotics", "runtime", "task graph", "dataflow", "configuration", "ron", "graphviz"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
    "Topic :: Scientific/Engineering",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
copperrt-rendercfg = "copperrt.rendercfg:main"

[tool.hatch.build.targets.wheel]
packages = ["copperrt"]

[tool.pytest.ini_options]
addopts = "-ra"
