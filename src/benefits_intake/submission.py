"""Final submission boundary.

The wizard's terminal action hands the committed application to a
``Submitter``. No backend exists yet: ``LocalAcknowledgementSubmitter``
acknowledges locally and sends nothing anywhere.

Example Usage:
    ```python
    class CaseworkerQueueSubmitter:
        '''Posts applications to a caseworker queue.'''

        def submit(self, state: ApplicationState) -> SubmissionReceipt:
            response = queue.post(state.model_dump(mode="json"))
            if not response.ok:
                raise SubmissionError("Queue rejected the application")
            return SubmissionReceipt(confirmation_id=response.id, message="Received")

    # CaseworkerQueueSubmitter satisfies Submitter without inheriting from it
    ```
"""

import uuid
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable

import structlog
from pydantic import BaseModel, Field

from benefits_intake.models.steps import ApplicationState

logger = structlog.get_logger()

DEMO_ACKNOWLEDGEMENT = "Application submitted successfully! (This is a demo - no data was sent to a server)"


class SubmissionReceipt(BaseModel):
    """Acknowledgement returned by a submitter.

    Attributes:
        confirmation_id: Identifier the applicant can quote
        message: Text shown to the applicant
        submitted_at: When the application was accepted (UTC)
    """

    confirmation_id: str
    message: str
    submitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


@runtime_checkable
class Submitter(Protocol):
    """Contract for the final submission collaborator."""

    def submit(self, state: ApplicationState) -> SubmissionReceipt:
        """Submit a complete application.

        Args:
            state: Snapshot of the committed application

        Returns:
            Receipt with a confirmation id

        Raises:
            SubmissionError: If the application could not be accepted
        """
        ...


class LocalAcknowledgementSubmitter:
    """Submitter that acknowledges locally without sending anything."""

    def __init__(self, message: str = DEMO_ACKNOWLEDGEMENT):
        self.message = message
        self.submitted: list[SubmissionReceipt] = []

    def submit(self, state: ApplicationState) -> SubmissionReceipt:
        receipt = SubmissionReceipt(
            confirmation_id=uuid.uuid4().hex[:10].upper(),
            message=self.message,
        )
        self.submitted.append(receipt)
        logger.info(
            "application_acknowledged",
            confirmation_id=receipt.confirmation_id,
            programs=[program.value for program in state.program_selection.programs],
            household_size=len(state.members),
        )
        return receipt


__all__ = [
    "DEMO_ACKNOWLEDGEMENT",
    "SubmissionReceipt",
    "Submitter",
    "LocalAcknowledgementSubmitter",
]
