"""Document prefill: fill applicant and member fields from uploaded documents.

Uploaded documents (ID cards, licenses, letters) are handed to a
``PrefillProvider`` which returns a sparse ``PrefillRecord``. Records from
several documents are merged (later documents win per field) and applied to
the current draft for the keys that are present only; nothing is ever
overwritten with a missing value.

Prefill is asynchronous and must never block the form:

- ``DocumentPrefillService.submit_files`` never raises. Provider failures
  are logged and skipped.
- Results are applied through a ``PrefillTicket`` issued when the upload
  starts. A ticket from an earlier step visit is stale and its result is
  discarded; fields the user edited after the ticket was issued are left
  alone.

Two providers are included: ``DemoPrefillProvider`` waits and returns an
empty record, and ``PdfTextPrefillProvider`` reads labelled fields from the
text layer of a PDF (no OCR).
"""

import asyncio
import re
from dataclasses import dataclass
from datetime import date, datetime
from io import BytesIO
from typing import Any, Collection, Iterable, Mapping, Optional, Protocol, Sequence, runtime_checkable

import structlog
from pydantic import BaseModel, ConfigDict, Field
from PyPDF2 import PdfReader

from benefits_intake.config import PrefillConfig
from benefits_intake.exceptions import PrefillError
from benefits_intake.models.enums import StepId
from benefits_intake.validation.rules import format_ssn, get_path, is_blank, set_path

logger = structlog.get_logger()


# =============================================================================
# RECORDS
# =============================================================================

class PrefillAddress(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None


class PrefillRecord(BaseModel):
    """Fields a document yielded. Every field is optional."""

    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[date] = None
    ssn: Optional[str] = None
    address: PrefillAddress = Field(default_factory=PrefillAddress)
    phone_number: Optional[str] = None
    email: Optional[str] = None

    def present_fields(self) -> dict[str, Any]:
        """Flattened ``{"address.city": ...}`` mapping of the fields that are set."""
        present: dict[str, Any] = {}
        for key, value in self.model_dump(exclude={"address"}).items():
            if not is_blank(value):
                present[key] = value
        for key, value in self.address.model_dump().items():
            if not is_blank(value):
                present[f"address.{key}"] = value
        return present

    @property
    def is_empty(self) -> bool:
        return not self.present_fields()


def merge_records(records: Iterable[PrefillRecord]) -> PrefillRecord:
    """Merge records field by field; later records win for fields they set."""
    merged: dict[str, Any] = {"address": {}}
    for record in records:
        for path, value in record.present_fields().items():
            set_path(merged, path, value)
    return PrefillRecord.model_validate(merged)


# Record field -> draft path
APPLICANT_FIELD_MAP: dict[str, str] = {
    "first_name": "name.first",
    "middle_name": "name.middle",
    "last_name": "name.last",
    "address.street": "street_address",
    "address.city": "city",
    "address.zip": "zip",
    "phone_number": "primary_phone",
    "email": "email",
}

MEMBER_FIELD_MAP: dict[str, str] = {
    "first_name": "name.first",
    "middle_name": "name.middle",
    "last_name": "name.last",
    "date_of_birth": "date_of_birth",
    "ssn": "ssn",
}


def _draft_dict(draft: Any) -> dict[str, Any]:
    if draft is None:
        return {}
    if isinstance(draft, BaseModel):
        return draft.model_dump(warnings=False)
    return _deep_copy(dict(draft))


def _deep_copy(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _deep_copy(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_deep_copy(item) for item in value]
    return value


def apply_record(
    draft: Any,
    record: PrefillRecord,
    field_map: Mapping[str, str],
    *,
    prefix: str = "",
    skip: Collection[str] = (),
) -> dict[str, Any]:
    """Sparse-merge ``record`` into a copy of ``draft``.

    Only fields present in the record are written; ``skip`` lists draft
    paths that must not be touched.

    Returns:
        The updated draft as a dict
    """
    updated = _draft_dict(draft)
    for key, value in record.present_fields().items():
        target = field_map.get(key)
        if target is None:
            continue
        path = f"{prefix}{target}"
        if path in skip:
            continue
        if key == "ssn":
            value = format_ssn(value)
        set_path(updated, path, value)
    return updated


def apply_to_applicant(draft: Any, record: PrefillRecord, *, skip: Collection[str] = ()) -> dict[str, Any]:
    """Apply a record to an Applicant Information draft."""
    return apply_record(draft, record, APPLICANT_FIELD_MAP, skip=skip)


def apply_to_member(
    draft: Any,
    record: PrefillRecord,
    *,
    prefix: str = "",
    skip: Collection[str] = (),
) -> dict[str, Any]:
    """Apply a record to one household member draft.

    With ``prefix`` (e.g. ``"members.2."``) ``draft`` is the whole household
    draft and the record lands on that member.
    """
    return apply_record(draft, record, MEMBER_FIELD_MAP, prefix=prefix, skip=skip)


# =============================================================================
# TICKETS
# =============================================================================

class PrefillTicket(BaseModel):
    """Token for one prefill request, scoped to a single step visit.

    Attributes:
        step: Step that was displayed when the upload started
        epoch: Visit counter of the session at that time
        baseline: Values of the target draft paths when the ticket was issued
    """

    model_config = ConfigDict(frozen=True)

    step: StepId
    epoch: int
    baseline: dict[str, Any] = Field(default_factory=dict)

    def is_current(self, step: StepId, epoch: int) -> bool:
        """Check the user is still on the visit the ticket was issued for."""
        return self.step == step and self.epoch == epoch

    def edited_paths(self, draft: Any) -> set[str]:
        """Target paths whose value changed since the ticket was issued."""
        return {
            path for path, value in self.baseline.items()
            if get_path(draft, path) != value
        }


def issue_ticket(
    step: StepId,
    epoch: int,
    draft: Any,
    field_map: Mapping[str, str],
    *,
    prefix: str = "",
) -> PrefillTicket:
    """Issue a ticket recording the current values of every target path."""
    baseline = {
        f"{prefix}{target}": get_path(draft, f"{prefix}{target}")
        for target in field_map.values()
    }
    return PrefillTicket(step=step, epoch=epoch, baseline=baseline)


# =============================================================================
# PROVIDERS
# =============================================================================

@dataclass
class UploadedDocument:
    """An uploaded file as received from the browser."""
    name: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def is_pdf(self) -> bool:
        return self.content_type == "application/pdf" or self.name.lower().endswith(".pdf")


@runtime_checkable
class PrefillProvider(Protocol):
    """Contract for document field extraction."""

    name: str

    async def extract(self, document: UploadedDocument) -> PrefillRecord:
        """Extract fields from one document.

        Raises:
            PrefillError: If the document cannot be read
        """
        ...


class DemoPrefillProvider:
    """Simulates extraction latency and finds nothing."""

    name = "demo"

    def __init__(self, latency: float = 1.5):
        self.latency = latency

    async def extract(self, document: UploadedDocument) -> PrefillRecord:
        await asyncio.sleep(self.latency)
        logger.debug("demo_prefill_extracted", source=document.name)
        return PrefillRecord()


class PdfTextPrefillProvider:
    """Reads labelled personal fields from the text layer of a PDF.

    Scanned images have no text layer and yield an empty record.
    """

    name = "pdf_text"

    FIELD_PATTERNS = {
        "first_name": [
            r"(?im)^\s*first\s+name\s*:\s*([A-Za-z][A-Za-z'-]*)",
            r"(?im)^\s*given\s+name\s*:\s*([A-Za-z][A-Za-z'-]*)",
        ],
        "middle_name": [
            r"(?im)^\s*middle\s+name\s*:\s*([A-Za-z][A-Za-z'.-]*)",
        ],
        "last_name": [
            r"(?im)^\s*last\s+name\s*:\s*([A-Za-z][A-Za-z'-]*)",
            r"(?im)^\s*(?:surname|family\s+name)\s*:\s*([A-Za-z][A-Za-z'-]*)",
        ],
        "date_of_birth": [
            r"(?i)(?:date\s+of\s+birth|birth\s*date|\bdob)\s*:\s*(\d{1,2}/\d{1,2}/\d{4}|\d{4}-\d{2}-\d{2})",
        ],
        "ssn": [
            r"(?i)(?:\bssn|social\s+security(?:\s+(?:number|no\.?))?)\s*:\s*(\d{3}-?\d{2}-?\d{4})\b",
        ],
        "address.street": [
            r"(?im)^\s*(?:street\s+)?address\s*:\s*([^,\n]+?)\s*(?:,|$)",
        ],
        "address.city": [
            r"(?im)^\s*city\s*:\s*([A-Za-z][A-Za-z .'-]*?)\s*$",
        ],
        "address.state": [
            r"(?im)^\s*state\s*:\s*([A-Z]{2})\s*$",
        ],
        "address.zip": [
            r"(?i)\bzip(?:\s+code)?\s*:\s*(\d{5}(?:-\d{4})?)\b",
        ],
        "phone_number": [
            r"(?i)(?:\bphone|\btel(?:ephone)?)(?:\s+(?:number|no\.?))?\s*:\s*(\(?\d{3}\)?[\s.-]?\d{3}[\s.-]?\d{4})",
        ],
        "email": [
            r"(?i)e-?mail(?:\s+address)?\s*:\s*([A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,})",
        ],
    }

    # "Name: First [Middle] Last" when the parts are not labelled separately
    FULL_NAME_PATTERN = re.compile(
        r"(?im)^\s*(?:full\s+)?name\s*:\s*([A-Za-z'-]+)(?:\s+([A-Za-z'.-]+))?\s+([A-Za-z'-]+)\s*$"
    )
    # "123 Main St, Richmond, VA 23219" on one line
    ADDRESS_LINE_PATTERN = re.compile(
        r"(?im)^\s*(?:(?:street\s+|mailing\s+)?address\s*:\s*)?(\d+[^,\n]*),\s*([A-Za-z .'-]+),\s*([A-Z]{2})\s+(\d{5}(?:-\d{4})?)\s*$"
    )

    def __init__(self):
        self._compiled = {
            key: [re.compile(pattern) for pattern in patterns]
            for key, patterns in self.FIELD_PATTERNS.items()
        }

    async def extract(self, document: UploadedDocument) -> PrefillRecord:
        text = await asyncio.to_thread(self.read_text, document)
        record = self.parse_text(text)
        logger.info(
            "pdf_prefill_extracted",
            source=document.name,
            fields_found=len(record.present_fields()),
        )
        return record

    def read_text(self, document: UploadedDocument) -> str:
        """Return the text layer of every page.

        Raises:
            PrefillError: If the document is not a readable PDF
        """
        if not document.is_pdf:
            raise PrefillError(
                f"Not a PDF document: {document.name}",
                source=document.name,
                provider=self.name,
            )
        try:
            reader = PdfReader(BytesIO(document.content))
        except Exception as e:
            raise PrefillError(
                f"Failed to read PDF: {e}",
                source=document.name,
                provider=self.name,
            ) from e

        pages: list[str] = []
        for page_num, page in enumerate(reader.pages, start=1):
            try:
                pages.append(page.extract_text() or "")
            except Exception as e:
                logger.warning("page_extraction_failed", source=document.name, page=page_num, error=str(e))
                pages.append("")
        return "\n".join(pages)

    def parse_text(self, text: str) -> PrefillRecord:
        """Extract a sparse record from document text."""
        found: dict[str, Any] = {"address": {}}

        full_name = self.FULL_NAME_PATTERN.search(text)
        if full_name:
            first, middle, last = full_name.groups()
            found["first_name"] = first
            found["last_name"] = last
            if middle:
                found["middle_name"] = middle

        address_line = self.ADDRESS_LINE_PATTERN.search(text)
        if address_line:
            street, city, state, zip_code = address_line.groups()
            found["address"] = {"street": street.strip(), "city": city.strip(), "state": state, "zip": zip_code}

        # Individually labelled fields take precedence
        for key, patterns in self._compiled.items():
            for pattern in patterns:
                match = pattern.search(text)
                if match:
                    set_path(found, key, match.group(1).strip())
                    break

        if "date_of_birth" in found:
            found["date_of_birth"] = self._parse_date(found["date_of_birth"])
        if "ssn" in found:
            found["ssn"] = format_ssn(found["ssn"])

        return PrefillRecord.model_validate(found)

    def _parse_date(self, raw: str) -> Optional[date]:
        for fmt in ("%m/%d/%Y", "%Y-%m-%d"):
            try:
                return datetime.strptime(raw, fmt).date()
            except ValueError:
                continue
        logger.debug("prefill_date_unparsed", raw=raw)
        return None


# =============================================================================
# SERVICE
# =============================================================================

class DocumentPrefillService:
    """Runs a provider over a batch of uploaded documents.

    Args:
        provider: Extraction provider (defaults to the demo provider)
        config: Prefill settings
    """

    def __init__(
        self,
        provider: Optional[PrefillProvider] = None,
        config: Optional[PrefillConfig] = None,
    ):
        self.config = config or PrefillConfig()
        self.provider = provider or DemoPrefillProvider(latency=self.config.simulated_latency)

    async def submit_files(self, files: Sequence[UploadedDocument]) -> Optional[PrefillRecord]:
        """Extract and merge fields from every document.

        Never raises: a document that fails is logged and skipped.

        Returns:
            The merged record, or None when prefill is disabled or no
            document could be read
        """
        if not self.config.enabled:
            logger.info("prefill_disabled", files=len(files))
            return None
        if not files:
            return None

        accepted: list[UploadedDocument] = []
        for document in files:
            if len(accepted) >= self.config.max_files:
                logger.warning("prefill_file_skipped", source=document.name, reason="too_many_files")
            elif document.size > self.config.max_file_bytes:
                logger.warning("prefill_file_skipped", source=document.name, reason="too_large", size=document.size)
            else:
                accepted.append(document)
        if not accepted:
            return None

        results = await asyncio.gather(
            *(self.provider.extract(document) for document in accepted),
            return_exceptions=True,
        )

        records: list[PrefillRecord] = []
        for document, result in zip(accepted, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "prefill_failed",
                    source=document.name,
                    provider=self.provider.name,
                    error=str(result),
                    error_type=type(result).__name__,
                )
                continue
            records.append(result)

        if not records:
            return None

        merged = merge_records(records)
        logger.info(
            "prefill_completed",
            files=len(accepted),
            succeeded=len(records),
            fields_found=len(merged.present_fields()),
        )
        return merged


__all__ = [
    "PrefillAddress",
    "PrefillRecord",
    "merge_records",
    "APPLICANT_FIELD_MAP",
    "MEMBER_FIELD_MAP",
    "apply_record",
    "apply_to_applicant",
    "apply_to_member",
    "PrefillTicket",
    "issue_ticket",
    "UploadedDocument",
    "PrefillProvider",
    "DemoPrefillProvider",
    "PdfTextPrefillProvider",
    "DocumentPrefillService",
]
