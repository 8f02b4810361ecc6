"""Per-concern compilers, run by the pipeline in a fixed order."""

from .inventory import compile_inventory_rules
from .lifecycle import compile_lifecycle_rule, compile_lifecycle_rules
from .notification import compile_notifications
from .replication import check_unique_priorities, compile_replication
from .tiering import compile_tiering_rules

__all__ = [
    "compile_lifecycle_rules",
    "compile_lifecycle_rule",
    "compile_replication",
    "check_unique_priorities",
    "compile_notifications",
    "compile_inventory_rules",
    "compile_tiering_rules",
]
