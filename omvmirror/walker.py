"""Recursive traversal of a case's record tree.

Each node kind has one expander in ``Walker._expanders``.  An expander fetches
whatever listings the kind needs and returns an Expansion: the file groups to
sync and the child nodes to walk next, each with its local path.  ``walk`` then
fans out over both at once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from .downloader import Downloader
from .errors import UnimplementedNodeError
from .manifest import ManifestCollector
from .nodes import (
    OCCURRENCE_KINDS,
    CaseDocument,
    CaseProject,
    Component,
    DataBlock,
    FileDescriptor,
    GraphNode,
    LocalPath,
    Occurrence,
    OccurrenceListing,
    ProcedureStep,
    Stuk,
    Subject,
    dig,
    data_blocks,
    first_present,
    local_path,
)
from .orchestrator import fan_out

PLANS_TITLE = "Plannen en Foto's"
FORM_DEFINITION = "parameters/datablokDefinitie-form-io-formulier/{}"


@dataclass(frozen=True)
class FileGroup:
    """Files listed together; each lands at ``path + (file.name,)``."""

    title: str
    path: LocalPath
    files: tuple[FileDescriptor, ...]


@dataclass(frozen=True)
class DataTable:
    title: str
    columns: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]


@dataclass(frozen=True)
class DataForm:
    """A data block together with the form definition it was filled in on."""

    block: DataBlock
    definition: Any


@dataclass(frozen=True)
class Expansion:
    path: LocalPath
    groups: tuple[FileGroup, ...] = ()
    children: tuple[tuple[GraphNode, LocalPath], ...] = ()
    tables: tuple[DataTable, ...] = ()
    forms: tuple[DataForm, ...] = ()


@dataclass
class OutlineNode:
    """What the walk discovered at one node, for the report."""

    node: GraphNode
    path: LocalPath
    groups: tuple[FileGroup, ...] = ()
    tables: tuple[DataTable, ...] = ()
    forms: tuple[DataForm, ...] = ()
    children: list[OutlineNode] = field(default_factory=list)


@dataclass
class Outline:
    subjects: list[OutlineNode] = field(default_factory=list)
    procedure: list[OutlineNode] = field(default_factory=list)


def _records(value: Any, what: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise UnimplementedNodeError(what, f"expected a list, got {type(value).__name__}")
    return value


def _files(value: Any, what: str) -> tuple[FileDescriptor, ...]:
    return tuple(FileDescriptor.from_record(rec) for rec in _records(value, what))


def _table(record: Any) -> DataTable:
    columns = tuple(str(first_present(col, (("value",),)) or "") for col in _records(dig(record, "kolomNamen"), "tabel"))
    rows = tuple(
        tuple(str(first_present(cell, (("value",),)) or "") for cell in _records(dig(row, "data"), "tabel"))
        for row in _records(dig(record, "rijen"), "tabel")
    )
    return DataTable(title=first_present(record, (("titel",),)) or "", columns=columns, rows=rows)


class Walker:
    """Walk a case tree, syncing every file through ``downloader``."""

    def __init__(self, client: Any, downloader: Downloader, collector: ManifestCollector) -> None:
        self.client = client
        self.downloader = downloader
        self.collector = collector
        self._definitions: dict[str, Any] = {}
        self._expanders: dict[type, Callable[[Any, LocalPath], Awaitable[Expansion]]] = {
            Subject: self._expand_subject,
            Component: self._expand_component,
            Stuk: self._expand_stuk,
            CaseDocument: self._expand_case_document,
            ProcedureStep: self._expand_step,
            OccurrenceListing: self._expand_occurrence_listing,
            Occurrence: self._expand_occurrence,
        }

    async def mirror(self, project: CaseProject) -> Outline:
        """Walk both the subjects tree and the procedure tree of ``project``."""
        root: LocalPath = (project.case_id,)
        base = f"inzage/projecten/{project.uuid}"
        info, top_subjects, steps = await fan_out(
            [
                self.client.get(f"{base}/projectinformatie"),
                self.client.get_paged(f"{base}/top-voorwerpen"),
                self.client.get(f"{base}/procedure"),
            ]
        )
        if dig(info, "subOnderdelen"):
            logging.warning("projectinformatie of %s has sub-parts; they are not mirrored", project.case_id)

        outline = Outline()
        subjects = [Subject.from_record(rec) for rec in _records(top_subjects, "top-voorwerpen")]
        stages = [ProcedureStep.from_record(rec) for rec in _records(steps, "procedure")]
        branches = []
        for node, bucket in [(s, outline.subjects) for s in subjects] + [(p, outline.procedure) for p in stages]:
            entry = OutlineNode(node, root)
            bucket.append(entry)
            branches.append(self.walk(node, root, entry))
        await fan_out(branches)
        return outline

    async def expand(self, node: GraphNode, parent: LocalPath) -> Expansion:
        """Discover the files and children of ``node`` below ``parent``."""
        expander = self._expanders.get(type(node))
        if expander is None:
            raise UnimplementedNodeError(type(node).__name__, "no expander for this node kind")
        return await expander(node, parent)

    async def walk(self, node: GraphNode, parent: LocalPath, outline: OutlineNode) -> None:
        expansion = await self.expand(node, parent)
        outline.path = expansion.path
        outline.groups = expansion.groups
        outline.tables = expansion.tables
        outline.forms = expansion.forms

        branches: list[Awaitable[None]] = []
        for group in expansion.groups:
            for descriptor in group.files:
                branches.append(self._sync_file(group.path, descriptor))
        for child, child_path in expansion.children:
            entry = OutlineNode(child, child_path)
            outline.children.append(entry)
            branches.append(self.walk(child, child_path, entry))
        await fan_out(branches)

    async def _sync_file(self, directory: LocalPath, descriptor: FileDescriptor) -> None:
        path = local_path(directory, descriptor.name)
        if not self.collector.claim(path, descriptor.uuid):
            return
        self.collector.append(await self.downloader.sync(path, descriptor))

    async def _forms(self, blocks: tuple[DataBlock, ...]) -> tuple[DataForm, ...]:
        """Pair each block with its form definition, fetching every definition once."""
        wanted = [b for b in dict.fromkeys(block.block_id for block in blocks) if b not in self._definitions]
        fetched = await fan_out([self.client.get(FORM_DEFINITION.format(block_id)) for block_id in wanted])
        self._definitions.update(zip(wanted, fetched))
        return tuple(DataForm(block, self._definitions[block.block_id]) for block in blocks)

    async def _expand_subject(self, node: Subject, parent: LocalPath) -> Expansion:
        path = local_path(parent, node.segment)
        base = f"inzage/voorwerpen/{node.uuid}"
        plans, components, documents = await fan_out(
            [
                self.client.post_paged(f"{base}/plannen-en-fotos", {"filters": []}),
                self.client.get(f"{base}/onderdelen"),
                self.client.get(f"{base}/dossierstukken"),
            ]
        )
        children: list[tuple[GraphNode, LocalPath]] = []
        children.extend((Component.from_record(rec), path) for rec in _records(components, "onderdelen"))
        children.extend((CaseDocument.from_record(rec), path) for rec in _records(documents, "dossierstukken"))
        return Expansion(
            path=path,
            groups=(FileGroup(PLANS_TITLE, path, _files(plans, "plannen-en-fotos")),),
            children=tuple(children),
        )

    async def _expand_component(self, node: Component, parent: LocalPath) -> Expansion:
        path = local_path(parent, node.segment)
        details = await self.client.get(f"inzage/dossier-onderdelen/{node.uuid}/details")
        stukken = [Stuk.from_record(rec) for rec in _records(dig(details, "details"), "details")]
        return Expansion(path=path, children=tuple((stuk, path) for stuk in stukken))

    async def _expand_stuk(self, node: Stuk, parent: LocalPath) -> Expansion:
        groups: tuple[FileGroup, ...] = ()
        if node.files_id and node.files_segment is not None:
            listing = await self.client.get_paged(f"inzage/dossierstukken/{node.files_id}/bestanden")
            group_path = local_path(parent, node.files_segment)
            groups = (FileGroup(node.title, group_path, _files(listing, "bestanden")),)
        children: tuple[tuple[GraphNode, LocalPath], ...] = ()
        if node.children and node.children_segment is not None:
            child_path = local_path(parent, node.children_segment)
            children = tuple((child, child_path) for child in node.children)
        return Expansion(path=parent, groups=groups, children=children, forms=await self._forms(node.blocks))

    async def _expand_case_document(self, node: CaseDocument, parent: LocalPath) -> Expansion:
        path = local_path(parent, node.segment)
        listing = await self.client.get_paged(f"inzage/dossierstukken/{node.uuid}/bestanden")
        return Expansion(
            path=path,
            groups=(FileGroup(node.segment, path, _files(listing, "bestanden")),),
            forms=await self._forms(node.blocks),
        )

    async def _expand_step(self, node: ProcedureStep, parent: LocalPath) -> Expansion:
        path = local_path(parent, node.segment)
        children: list[tuple[GraphNode, LocalPath]] = [(stuk, path) for stuk in node.stukken]
        children.extend((OccurrenceListing(node.uuid, kind), path) for kind in OCCURRENCE_KINDS)
        return Expansion(path=path, children=tuple(children))

    async def _expand_occurrence_listing(self, node: OccurrenceListing, parent: LocalPath) -> Expansion:
        path = local_path(parent, node.kind)
        records = await self.client.get_paged(f"inzage/projectfasen/{node.step_uuid}/{node.kind}-gebeurtenissen")
        occurrences = [Occurrence.from_record(rec) for rec in _records(records, f"{node.kind}-gebeurtenissen")]
        return Expansion(path=path, children=tuple((occ, path) for occ in occurrences))

    async def _expand_occurrence(self, node: Occurrence, parent: LocalPath) -> Expansion:
        path = local_path(parent, node.segment)
        sections = _records(await self.client.get(f"inzage/gebeurtenissen/{node.uuid}"), "gebeurtenis")
        groups = []
        blocks: list[DataBlock] = []
        tables = []
        for section in sections:
            if dig(section, "tabel"):
                tables.append(_table(section["tabel"]))
            blocks.extend(data_blocks(dig(section, "datablokken"), "gebeurtenis"))
            files = _files(dig(section, "bestanden"), "gebeurtenis")
            if not files:
                continue
            title = first_present(section, (("titel",),))
            if title is None:
                raise UnimplementedNodeError("gebeurtenis", f"{node.uuid} has files in a section without titel")
            groups.append(FileGroup(title, local_path(path, title), files))
        return Expansion(
            path=path,
            groups=tuple(groups),
            tables=tuple(tables),
            forms=await self._forms(tuple(blocks)),
        )
