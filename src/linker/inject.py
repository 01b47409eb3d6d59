"""Turn the two labels of every diagram node into hyperlinks.

A node group qualifies when it holds exactly two ``text tspan`` labels: the
project name followed by the build-job name. The legend entry, whose first
label is the sentinel, and every group of a different shape stay untouched.
Nothing here raises for an odd group; only unparseable input is an error.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

from lxml import etree

from linker.config import LinkTemplates

logger = logging.getLogger(__name__)

XLINK_NS = "http://www.w3.org/1999/xlink"

_LABELS_XPATH = etree.XPath(".//*[local-name()='text']//*[local-name()='tspan']")


class DiagramError(ValueError):
    """The input is not a diagram document we can work on."""


class LabelOutcome(str, Enum):
    TRANSFORM = "transform"
    SKIP_SENTINEL = "skip_sentinel"
    SKIP_SHAPE_MISMATCH = "skip_shape_mismatch"


@dataclass
class GroupDecision:
    outcome: LabelOutcome
    labels: list = field(default_factory=list, repr=False)
    project: str | None = None
    job: str | None = None
    group_id: str | None = None

    def as_dict(self) -> dict:
        return {
            "outcome": self.outcome.value,
            "group_id": self.group_id,
            "labels": len(self.labels),
            "project": self.project,
            "job": self.job,
        }


@dataclass
class InjectionResult:
    decisions: list[GroupDecision] = field(default_factory=list)

    def count(self, outcome: LabelOutcome) -> int:
        return sum(1 for d in self.decisions if d.outcome is outcome)

    @property
    def linked(self) -> int:
        return self.count(LabelOutcome.TRANSFORM)

    def as_dict(self, templates: LinkTemplates | None = None) -> dict:
        groups = []
        for i, d in enumerate(self.decisions):
            row = {"index": i, **d.as_dict()}
            if templates is not None and d.outcome is LabelOutcome.TRANSFORM:
                row["project_url"] = templates.project_link(d.project or "")
                row["job_url"] = templates.job_link(d.job or "")
            groups.append(row)
        return {
            "groups_total": len(self.decisions),
            "counts": {o.value: self.count(o) for o in LabelOutcome},
            "groups": groups,
        }


def _local_name(el) -> str:
    return etree.QName(el).localname


def iter_groups(document) -> Iterator[etree._Element]:
    """All ``g`` elements of ``document`` (tree or element), in document order."""
    root = document.getroot() if isinstance(document, etree._ElementTree) else document
    for el in root.iter(tag=etree.Element):
        if _local_name(el) == "g":
            yield el


def find_labels(group) -> list:
    return list(_LABELS_XPATH(group))


def label_text(label) -> str:
    return "".join(label.itertext())


def classify_group(group, sentinel: str) -> GroupDecision:
    labels = find_labels(group)
    group_id = group.get("id")
    if len(labels) != 2:
        return GroupDecision(LabelOutcome.SKIP_SHAPE_MISMATCH, labels, group_id=group_id)
    project, job = label_text(labels[0]), label_text(labels[1])
    if project == sentinel:
        return GroupDecision(LabelOutcome.SKIP_SENTINEL, labels, project, job, group_id)
    return GroupDecision(LabelOutcome.TRANSFORM, labels, project, job, group_id)


def link_label(label, text: str, url: str, target: str) -> None:
    """Replace the content of ``label`` with an anchor around ``text``."""
    for child in list(label):
        label.remove(child)
    label.text = None

    ns = etree.QName(label).namespace
    tag = f"{{{ns}}}a" if ns else "a"
    anchor = etree.SubElement(label, tag)
    # SVG 1.1 viewers only follow xlink:href
    if XLINK_NS in label.nsmap.values():
        anchor.set(f"{{{XLINK_NS}}}href", url)
    anchor.set("href", url)
    anchor.set("target", target)
    anchor.text = text


def inject_links(document, templates: LinkTemplates | None = None) -> InjectionResult:
    """Rewrite every qualifying group of ``document`` in place.

    A label pair belongs to the innermost group holding it: a wrapper around a
    single node sees the same two labels but is not a node itself and counts
    as a shape mismatch.
    """
    templates = templates or LinkTemplates()
    result = InjectionResult()
    claimed: set = set()
    # Reverse document order visits inner groups before their wrappers.
    for group in reversed(list(iter_groups(document))):
        decision = classify_group(group, templates.sentinel)
        if decision.outcome is not LabelOutcome.SKIP_SHAPE_MISMATCH:
            if decision.labels[0] in claimed:
                decision = GroupDecision(LabelOutcome.SKIP_SHAPE_MISMATCH, decision.labels, group_id=decision.group_id)
            else:
                claimed.add(decision.labels[0])
        result.decisions.insert(0, decision)
        if decision.outcome is not LabelOutcome.TRANSFORM:
            logger.debug("skip group %s: %s", decision.group_id, decision.outcome.value)
            continue
        first, second = decision.labels
        link_label(first, decision.project, templates.project_link(decision.project), templates.target)
        link_label(second, decision.job, templates.job_link(decision.job), templates.target)
        logger.debug("linked group %s: %s / %s", decision.group_id, decision.project, decision.job)

    logger.info(
        "linked %d of %d groups (%d legend, %d other)",
        result.linked,
        len(result.decisions),
        result.count(LabelOutcome.SKIP_SENTINEL),
        result.count(LabelOutcome.SKIP_SHAPE_MISMATCH),
    )
    return result


def parse_svg(data: bytes) -> etree._ElementTree:
    parser = etree.XMLParser(resolve_entities=False, strip_cdata=False, no_network=True, huge_tree=True)
    try:
        tree = etree.fromstring(data, parser).getroottree()
    except etree.XMLSyntaxError as e:
        raise DiagramError(f"not a well-formed SVG document: {e}") from e
    if _local_name(tree.getroot()) != "svg":
        raise DiagramError(f"root element is <{_local_name(tree.getroot())}>, expected <svg>")
    return tree


def serialize_svg(tree: etree._ElementTree) -> bytes:
    return etree.tostring(tree, xml_declaration=True, encoding="UTF-8")


def link_svg(data: bytes, templates: LinkTemplates | None = None) -> tuple[bytes, InjectionResult]:
    tree = parse_svg(data)
    result = inject_links(tree, templates)
    return serialize_svg(tree), result
