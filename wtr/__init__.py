"""Look up Rust crate documentation from docs.rs."""

__version__ = "0.1.0"