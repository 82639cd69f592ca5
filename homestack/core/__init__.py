"""Core building blocks: configuration, logging, discovery and subprocess execution."""
