"""
Entry point for running task-optimizer as a module.

Usage:
    python -m topt_ui start "Compiling kernel"
"""

from topt_ui.cli import main

if __name__ == "__main__":
    main()
