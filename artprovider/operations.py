# artprovider/operations.py
"""
Operation plans for batch application.

A batch is an ordered list of operations. Update and delete operations
may take selection arguments from the result of an earlier operation:
``back_references`` maps a selection argument index to the index of the
operation whose result fills it. For an insert the value is the new
row's id; for an update or delete it is the affected row count.

Replacing a whole collection with one row is expressed as:

    [
        InsertOp(uri, values),
        DeleteOp(uri, selection="_id != ?", back_references={0: 0}),
    ]
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .contract import ContentUri
from .errors import OperationApplicationError


@dataclass
class OperationResult:
    """
    Result of one applied operation.

    Attributes:
        uri: Address of the inserted row (inserts only)
        count: Number of rows affected (updates and deletes)
    """
    uri: Optional[ContentUri] = None
    count: Optional[int] = None

    def back_reference_value(self) -> int:
        """The value a later operation receives when it references this result."""
        if self.uri is not None:
            row_id = self.uri.row_id
            if row_id is None:
                raise OperationApplicationError(f"Result URI has no row id: {self.uri}")
            return row_id
        if self.count is not None:
            return self.count
        raise OperationApplicationError("Result has neither a URI nor a count")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uri": str(self.uri) if self.uri is not None else None,
            "count": self.count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OperationResult":
        uri = data.get("uri")
        return cls(
            uri=ContentUri.parse(uri) if uri else None,
            count=data.get("count"),
        )


@dataclass
class InsertOp:
    """Insert (or upsert by token) one row."""
    uri: ContentUri
    values: Dict[str, Any] = field(default_factory=dict)

    op_type = "insert"

    def references(self) -> List[int]:
        return []

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.op_type, "uri": str(self.uri), "values": dict(self.values)}


@dataclass
class _SelectionOp:
    uri: ContentUri
    selection: Optional[str] = None
    selection_args: List[Any] = field(default_factory=list)
    back_references: Dict[int, int] = field(default_factory=dict)

    def references(self) -> List[int]:
        return sorted(set(self.back_references.values()))

    def resolve_args(self, results: List[OperationResult]) -> List[Any]:
        """
        Selection arguments with back-references filled in.

        Args:
            results: Results of the operations applied so far

        Returns:
            Selection arguments, padded as needed for referenced indices
        """
        args = list(self.selection_args)
        for arg_index, op_index in sorted(self.back_references.items()):
            if op_index >= len(results):
                raise OperationApplicationError(
                    f"Back-reference to operation {op_index} which has not been applied"
                )
            while len(args) <= arg_index:
                args.append(None)
            args[arg_index] = str(results[op_index].back_reference_value())
        return args

    def _base_dict(self) -> Dict[str, Any]:
        return {
            "type": self.op_type,
            "uri": str(self.uri),
            "selection": self.selection,
            "selection_args": list(self.selection_args),
            # JSON object keys must be strings
            "back_references": {str(k): v for k, v in self.back_references.items()},
        }


@dataclass
class UpdateOp(_SelectionOp):
    """Update the selected rows."""
    values: Dict[str, Any] = field(default_factory=dict)

    op_type = "update"

    def to_dict(self) -> Dict[str, Any]:
        data = self._base_dict()
        data["values"] = dict(self.values)
        return data


@dataclass
class DeleteOp(_SelectionOp):
    """Delete the selected rows."""

    op_type = "delete"

    def to_dict(self) -> Dict[str, Any]:
        return self._base_dict()


Operation = Union[InsertOp, UpdateOp, DeleteOp]


def operation_from_dict(data: Dict[str, Any]) -> Operation:
    """Rebuild an operation from its ``to_dict`` form."""
    op_type = data.get("type")
    uri = ContentUri.parse(data["uri"])
    if op_type == InsertOp.op_type:
        return InsertOp(uri=uri, values=data.get("values", {}))

    common = dict(
        uri=uri,
        selection=data.get("selection"),
        selection_args=data.get("selection_args", []),
        back_references={int(k): int(v) for k, v in data.get("back_references", {}).items()},
    )
    if op_type == UpdateOp.op_type:
        return UpdateOp(values=data.get("values", {}), **common)
    if op_type == DeleteOp.op_type:
        return DeleteOp(**common)
    raise ValueError(f"Unknown operation type: {op_type!r}")
