"""Plain-value result envelope returned by the operation surface."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class GitOperationResult:
    """Result of a version-control operation."""
    success: bool
    message: str
    operation: str
    error_code: Optional[str] = None
    data: Any = None
    working_tree_root: Optional[str] = None
    context: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert the result to a JSON-serialisable dictionary."""
        result = {
            "success": self.success,
            "operation": self.operation,
            "message": self.message,
            "timestamp": datetime.now().isoformat(),
        }
        if self.error_code:
            result["error_code"] = self.error_code
        if self.working_tree_root:
            result["working_tree_root"] = self.working_tree_root
        if self.success:
            result["data"] = self.data
        if self.context:
            result["context"] = {key: str(value) for key, value in self.context.items()}
        return result


def create_success_result(
    operation: str,
    message: str,
    data: Any = None,
    working_tree_root: Optional[str] = None
) -> GitOperationResult:
    """
    Helper function to create a successful GitOperationResult.

    Args:
        operation: Name of the operation that was performed
        message: Descriptive message about the operation result
        data: Operation payload (status map, commit record, divergence, ...)
        working_tree_root: Working-tree root the operation ran against

    Returns:
        GitOperationResult with success=True
    """
    return GitOperationResult(
        success=True,
        message=message,
        operation=operation,
        data=data,
        working_tree_root=working_tree_root
    )
