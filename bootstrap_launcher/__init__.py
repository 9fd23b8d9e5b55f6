"""bootstrap-launcher.

A small build utility that turns a resolved JVM dependency graph into a single
self-executing launcher: a shell preamble followed by a JAR archive.
"""

__all__: list[str] = ["__version__"]

__version__: str = "0.1.0"
