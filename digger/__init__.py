"""Crate Digger: collect and report on the packages of a Rust registry."""

__version__ = "0.1.0"
