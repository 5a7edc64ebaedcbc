"""gitmirror - cached bare Git mirrors with forced worktree checkout."""

__version__ = "1.0.0"
