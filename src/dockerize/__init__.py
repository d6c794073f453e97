"""cargo-dockerize — build a Rust project and package it as a container image."""

__version__ = "0.3.0"
