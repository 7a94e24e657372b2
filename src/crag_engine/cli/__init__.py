"""
CLI module - unified command-line interface.

Provides entry points for:
- Managing the shared knowledge base
- Running corrective retrieval
- Personal memory
"""

from crag_engine.cli.commands import (
    main,
    run_add_cli,
    run_ask_cli,
    run_list_cli,
    run_count_cli,
    run_delete_cli,
    run_clear_cli,
    run_remember_cli,
    run_recall_cli,
)

__all__ = [
    "main",
    "run_add_cli",
    "run_ask_cli",
    "run_list_cli",
    "run_count_cli",
    "run_delete_cli",
    "run_clear_cli",
    "run_remember_cli",
    "run_recall_cli",
]
