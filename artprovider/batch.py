# artprovider/batch.py
"""
Batch execution of dependent store operations.

A batch runs as one unit against one authority: either every operation
is applied and one result per operation comes back, or nothing is
applied and the result carries a typed failure.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .errors import OperationApplicationError, StoreError, StoreUnavailable
from .operations import Operation, OperationResult
from .transport import Transport

logger = logging.getLogger(__name__)


class FailureKind(Enum):
    """Why a batch was not applied."""
    APPLICATION = "application"  # the store rejected the batch
    TRANSPORT = "transport"      # the store could not be reached


@dataclass
class BatchFailure:
    """
    Failure detail of a batch that was not applied.

    Attributes:
        kind: Application-level rejection or transport-level failure
        message: Human-readable detail
        index: Operation that failed, when the store reports it
    """
    kind: FailureKind
    message: str
    index: Optional[int] = None


@dataclass
class BatchResult:
    """Result of executing a batch."""
    success: bool
    results: List[OperationResult] = field(default_factory=list)
    failure: Optional[BatchFailure] = None
    execution_time: float = 0.0


def validate_plan(operations: List[Operation]) -> List[str]:
    """
    Check back-references in a plan.

    Returns list of error messages (empty if valid).
    """
    errors = []
    if not operations:
        errors.append("Batch is empty")
    for index, operation in enumerate(operations):
        for ref in operation.references():
            if ref < 0 or ref >= index:
                errors.append(f"Operation {index} references operation {ref}, which does not precede it")
    return errors


class BatchExecutor:
    """
    Executes operation plans through a transport.

    Usage:
        executor = BatchExecutor(transport)
        result = executor.execute("com.example.art", [insert_op, delete_op])
        if result.success:
            new_row = result.results[0].uri
    """

    def __init__(self, transport: Transport):
        self.transport = transport

    def execute(self, authority: str, operations: List[Operation]) -> BatchResult:
        """
        Apply a batch as a single all-or-nothing unit.

        Args:
            authority: Authority of the provider that receives the batch
            operations: Operations in order; later ones may back-reference
                earlier ones

        Returns:
            BatchResult with one result per operation, or a failure
        """
        start_time = time.time()

        errors = validate_plan(operations)
        if errors:
            return self._failed(
                BatchFailure(FailureKind.APPLICATION, f"Invalid batch: {errors}"),
                start_time,
            )

        try:
            results = self.transport.apply_batch(authority, operations)
        except OperationApplicationError as e:
            return self._failed(
                BatchFailure(FailureKind.APPLICATION, str(e), index=e.index),
                start_time,
            )
        except StoreUnavailable as e:
            return self._failed(BatchFailure(FailureKind.TRANSPORT, str(e)), start_time)
        except StoreError as e:
            return self._failed(BatchFailure(FailureKind.APPLICATION, str(e)), start_time)

        if len(results) != len(operations):
            return self._failed(
                BatchFailure(
                    FailureKind.APPLICATION,
                    f"Expected {len(operations)} results, got {len(results)}",
                ),
                start_time,
            )

        logger.debug(f"Batch of {len(operations)} operations applied to {authority}")
        return BatchResult(
            success=True,
            results=list(results),
            execution_time=time.time() - start_time,
        )

    def _failed(self, failure: BatchFailure, start_time: float) -> BatchResult:
        logger.warning(f"Batch not applied ({failure.kind.value}): {failure.message}")
        return BatchResult(
            success=False,
            failure=failure,
            execution_time=time.time() - start_time,
        )
