"""Records of a case file and the local paths derived from them.

Every remote record kind the walker understands is parsed into one of the
frozen dataclasses below.  Where a kind has more than one candidate field for
its id or its path segment, the candidates are tried in the declared order and
the first present one wins; a record with none of them is rejected with
UnimplementedNodeError rather than guessed at.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from typing import Any, Union

from .errors import UnimplementedNodeError

LocalPath = tuple[str, ...]

# Fallback order per node kind.
SUBJECT_SEGMENT = (("betreft",),)
COMPONENT_SEGMENT = (("inhoud", "aard", "code"),)
STUK_TITLE = (("titel", "code"), ("titel",), ("aard", "code"))
STUK_FILES_SEGMENT = (("dossierstuk", "code"),)
STUK_CHILDREN_SEGMENT = (("codelijstMetCategorie", "code"),)
CASE_DOCUMENT_SEGMENT = (("dossierstukType", "code"),)
OCCURRENCE_ID = (("uuid",), ("adviesVraagGebeurtenisUuid",))
OCCURRENCE_SEGMENT = (("gevraagdAan",), ("verantwoordelijke",))
STEP_SEGMENT = (("inhoud", "aard", "code"),)

OCCURRENCE_KINDS = ("advies", "beslissing", "andere")


def dig(record: Any, *keys: str) -> Any:
    """Follow nested mapping keys; None as soon as one is missing."""
    value = record
    for key in keys:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def first_present(record: Any, candidates: tuple[tuple[str, ...], ...]) -> str | None:
    """Value of the first candidate field holding a non-empty scalar."""
    for keys in candidates:
        value = dig(record, *keys)
        if isinstance(value, bool) or value is None:
            continue
        if isinstance(value, (str, int)) and str(value) != "":
            return str(value)
    return None


def require(record: Any, kind: str, candidates: tuple[tuple[str, ...], ...]) -> str:
    value = first_present(record, candidates)
    if value is None:
        wanted = " or ".join(".".join(keys) for keys in candidates)
        raise UnimplementedNodeError(kind, f"record without {wanted}")
    return value


def _require_mapping(record: Any, kind: str) -> dict[str, Any]:
    if not isinstance(record, dict):
        raise UnimplementedNodeError(kind, f"expected an object, got {type(record).__name__}")
    return record


def safe_segment(value: str) -> str:
    """Make a remote value usable as exactly one path component."""
    cleaned = value.replace("/", "_").replace("\\", "_")
    if cleaned in ("", ".", ".."):
        return "_"
    return cleaned


def local_path(chain: LocalPath, name: str) -> LocalPath:
    """Ancestor segment chain plus a final component; a pure function."""
    return chain + (safe_segment(name),)


def path_str(path: LocalPath) -> str:
    return "/".join(path)


@dataclass(frozen=True)
class CaseProject:
    case_id: str
    uuid: str
    name: str
    appeal_status: Any = None
    state: Any = None

    @classmethod
    def from_record(cls, case_id: str, record: Any) -> CaseProject:
        record = _require_mapping(record, "project header")
        return cls(
            case_id=case_id,
            uuid=require(record, "project header", (("uuid",),)),
            name=first_present(record, (("projectnaam",),)) or "",
            appeal_status=record.get("beroepOfBezwaar"),
            state=record.get("toestand"),
        )

    @property
    def title(self) -> str:
        return f"{self.case_id}: {self.name}"


@dataclass(frozen=True)
class FileDescriptor:
    """An attachment as listed by the service; ``digest`` is the decoded hash."""

    uuid: str
    name: str
    digest: bytes | None
    size: int | None
    upload_dates: tuple[str, ...]
    description: str = ""
    extra: tuple[tuple[str, str], ...] = ()

    @classmethod
    def from_record(cls, record: Any) -> FileDescriptor:
        record = _require_mapping(record, "file")
        raw_hash = record.get("hash")
        digest = None
        if raw_hash:
            try:
                digest = base64.b64decode(raw_hash, validate=True)
            except (binascii.Error, ValueError) as exc:
                raise UnimplementedNodeError("file", f"undecodable hash {raw_hash!r}") from exc
        dates = record.get("datumOpladen") or ()
        if not isinstance(dates, (list, tuple)):
            dates = (dates,)
        size = record.get("grootte")
        extra = []
        for label, keys in (
            ("TekeningSoort", ("tekeningsoort", "code")),
            ("PlanAanduiding", ("planAanduiding",)),
            ("Toestand", ("toestand", "code")),
        ):
            value = first_present(record, (keys,))
            if value is not None:
                extra.append((label, value))
        return cls(
            uuid=require(record, "file", (("uuid",),)),
            name=require(record, "file", (("bestandsnaam",),)),
            digest=digest,
            size=int(size) if isinstance(size, (int, float)) else None,
            upload_dates=tuple(str(d) for d in dates),
            description=record.get("omschrijving") or "",
            extra=tuple(extra),
        )


@dataclass(frozen=True)
class Subject:
    """A voorwerp: the top-level item under review, e.g. an address."""

    uuid: str
    segment: str
    address: str = ""
    effects: str = ""

    @classmethod
    def from_record(cls, record: Any) -> Subject:
        record = _require_mapping(record, "voorwerp")
        return cls(
            uuid=require(record, "voorwerp", (("uuid",),)),
            segment=require(record, "voorwerp", SUBJECT_SEGMENT),
            address=first_present(record, (("adres",),)) or "",
            effects=first_present(record, (("effecten",),)) or "",
        )


@dataclass(frozen=True)
class Component:
    """An onderdeel of a subject; its stukken come from a detail fetch."""

    uuid: str
    segment: str
    content: str = ""

    @classmethod
    def from_record(cls, record: Any) -> Component:
        record = _require_mapping(record, "onderdeel")
        return cls(
            uuid=require(record, "onderdeel", (("uuid",),)),
            segment=require(record, "onderdeel", COMPONENT_SEGMENT),
            content=first_present(record, (("inhoud", "inhoud"),)) or "",
        )


@dataclass(frozen=True)
class DataBlock:
    """A form data block; ``content`` is the filled-in data, usually JSON text."""

    uuid: str
    block_id: str
    content: Any = None

    @classmethod
    def from_record(cls, record: Any) -> DataBlock:
        record = _require_mapping(record, "datablok")
        return cls(
            uuid=require(record, "datablok", (("uuid",),)),
            block_id=require(record, "datablok", (("blokId",),)),
            content=record.get("datablokinhoud"),
        )


def data_blocks(value: Any, kind: str) -> tuple[DataBlock, ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        raise UnimplementedNodeError(kind, f"non-list data blocks {type(value).__name__}")
    return tuple(DataBlock.from_record(rec) for rec in value)


@dataclass(frozen=True)
class Stuk:
    """A sub-node of a component or procedure step.

    Terminal stukken point at a file listing (``files_id``); others embed
    nested stukken, stored under the category code of their list.
    """

    uuid: str
    title: str
    content: str = ""
    files_id: str | None = None
    files_segment: str | None = None
    children: tuple[Stuk, ...] = ()
    children_segment: str | None = None
    blocks: tuple[DataBlock, ...] = ()

    @classmethod
    def from_record(cls, record: Any) -> Stuk:
        record = _require_mapping(record, "stuk")
        uuid = require(record, "stuk", (("uuid",),))
        if record.get("details"):
            raise UnimplementedNodeError("stuk", f"{uuid} carries details")
        files_id = first_present(record, (("dossierstukUuid",),))
        files_segment = require(record, "stuk", STUK_FILES_SEGMENT) if files_id else None
        subs = record.get("subOnderdelen") or []
        if not isinstance(subs, list):
            raise UnimplementedNodeError("stuk", f"{uuid} has non-list subOnderdelen")
        children = tuple(Stuk.from_record(sub) for sub in subs)
        children_segment = require(record, "stuk", STUK_CHILDREN_SEGMENT) if children else None
        return cls(
            uuid=uuid,
            title=first_present(record, STUK_TITLE) or "",
            content=first_present(record, (("inhoud",),)) or "",
            files_id=files_id,
            files_segment=files_segment,
            children=children,
            children_segment=children_segment,
            blocks=data_blocks(record.get("inzageDatablokResources"), "stuk"),
        )


@dataclass(frozen=True)
class CaseDocument:
    """A dossierstuk attached directly to a subject."""

    uuid: str
    segment: str
    blocks: tuple[DataBlock, ...] = ()

    @classmethod
    def from_record(cls, record: Any) -> CaseDocument:
        record = _require_mapping(record, "dossierstuk")
        return cls(
            uuid=require(record, "dossierstuk", (("uuid",),)),
            segment=require(record, "dossierstuk", CASE_DOCUMENT_SEGMENT),
            blocks=data_blocks(record.get("inzageDatablokResources"), "dossierstuk"),
        )


@dataclass(frozen=True)
class Occurrence:
    """A gebeurtenis (advice, decision or other event) of a procedure step."""

    uuid: str
    segment: str
    advice: tuple[tuple[str, str], ...] = ()

    @classmethod
    def from_record(cls, record: Any) -> Occurrence:
        record = _require_mapping(record, "gebeurtenis")
        advice = []
        if record.get("adviesVraagGebeurtenisUuid"):
            for key in (
                "aantalAdviezen",
                "aardLaatsteAdvies",
                "adviesVraagDatum",
                "datumLaatsteAdviesVerlening",
                "gevraagdAan",
                "gevraagdDoor",
            ):
                value = record.get(key)
                advice.append((key, "" if value is None else str(value)))
            advice.append(("voorwaarden", "ja" if record.get("voorwaarden") else "nee"))
        return cls(
            uuid=require(record, "gebeurtenis", OCCURRENCE_ID),
            segment=require(record, "gebeurtenis", OCCURRENCE_SEGMENT),
            advice=tuple(advice),
        )


@dataclass(frozen=True)
class ProcedureStep:
    uuid: str
    segment: str
    stukken: tuple[Stuk, ...] = field(default=())

    @classmethod
    def from_record(cls, record: Any) -> ProcedureStep:
        record = _require_mapping(record, "procedurestap")
        subs = record.get("subOnderdelen") or []
        if not isinstance(subs, list):
            raise UnimplementedNodeError("procedurestap", "non-list subOnderdelen")
        return cls(
            uuid=require(record, "procedurestap", (("uuid",),)),
            segment=require(record, "procedurestap", STEP_SEGMENT),
            stukken=tuple(Stuk.from_record(sub) for sub in subs),
        )


@dataclass(frozen=True)
class OccurrenceListing:
    """The gebeurtenissen of one kind (advies/beslissing/andere) under a step."""

    step_uuid: str
    kind: str

    def __post_init__(self) -> None:
        if self.kind not in OCCURRENCE_KINDS:
            raise UnimplementedNodeError("gebeurtenissen", f"unknown kind {self.kind!r}")


GraphNode = Union[Subject, Component, Stuk, CaseDocument, Occurrence, ProcedureStep, OccurrenceListing]
