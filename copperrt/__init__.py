"""Task-graph runtime toolkit: RON configuration graphs, execution planning, copper lists, clocks, tasks and monitoring."""

__version__ = "0.1.0"

__all__ = [
    "clock",
    "codec",
    "config",
    "copperlist",
    "curuntime",
    "cutask",
    "monitoring",
    "payload",
    "rendercfg",
    "ron",
    "simulation",
]