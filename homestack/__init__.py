"""homestack - run docker compose lifecycle commands across self-hosted stacks."""

__version__ = "0.1.0"
