"""Centralized constants for homestack."""

# Compose descriptor file names, in lookup order
COMPOSE_FILE_NAMES = (
    "compose.yml",
    "compose.yaml",
    "docker-compose.yml",
    "docker-compose.yaml",
)

# Deepest directory level (relative to the root) searched for stacks
MAX_STACK_DEPTH = 2

# Exit codes
EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

# Ordered sub-steps of the composite 'update' verb, before the system-wide prune
UPDATE_STEPS = ("pull", "build", "up")

DETACH_FLAGS = ("-d", "--detach")
