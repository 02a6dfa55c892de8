"""Command runners for shellagent."""

from shellagent.tools.bash import BashRunner, ShellOutput, default_shell

__all__ = ["BashRunner", "ShellOutput", "default_shell"]
