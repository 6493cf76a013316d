"""Record sources that feed the ChatNPT context.

Every record type the assistant can read is described once here: how to load
it for a tenant, how to turn it into uniform context chunks, which fields a
list query may filter on, and how a record reads as one line of a listing.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from app.models import (
    Company,
    Contact,
    Documentation,
    Issue,
    PracticeInfoPage,
    Release,
    ResourceAssignment,
    SaAssignment,
    SaToAmMapping,
    TrainingCert,
    User,
    WebexMessage,
    WebexRecording,
)
from app.permissions import filter_records

from .transcripts import format_timestamp, parse_vtt


@dataclass
class ContextChunk:
    key: str
    source: str
    source_type: str
    record_id: str
    topic: str
    text: str
    url: str = ""
    date: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RecordSource:
    key: str
    name: str
    label: str
    plural: str
    description: str
    icon: str
    view_url: str
    model: Any
    list_fields: Tuple[str, ...]
    aliases: Tuple[str, ...]
    normalize: Callable[[Any, "RecordSource"], List[ContextChunk]]
    list_line: Callable[[Any], str]
    base_filter: Optional[Callable[[Any], Any]] = None


def _iso(value) -> str:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return ""


def field_value(record, name: str):
    """Attribute value with enums unwrapped to their plain value."""
    value = getattr(record, name, None)
    if isinstance(value, enum.Enum):
        return value.value
    return value


def _clean(value) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v).strip() for v in value if str(v).strip())
    if isinstance(value, enum.Enum):
        value = value.value
    return str(value).strip()


def _summary(heading: str, pairs: Sequence[Tuple[str, Any]], body: str = "") -> str:
    lines = [heading] if heading else []
    for label, value in pairs:
        text = _clean(value)
        if text:
            lines.append(f"{label}: {text}")
    body = (body or "").strip()
    if body:
        lines.append(body)
    return "\n".join(lines)


def _details(*parts) -> str:
    kept = [_clean(p) for p in parts if _clean(p)]
    return f" [{', '.join(kept)}]" if kept else ""


def _single(source: RecordSource, record, topic: str, text: str, when=None, **extra) -> List[ContextChunk]:
    return [ContextChunk(
        key=f"{source.key}:{record.id}:0",
        source=source.name,
        source_type=source.key,
        record_id=str(record.id),
        topic=topic,
        text=text,
        url=source.view_url,
        date=_iso(when if when is not None else record.created_at),
        extra={k: v for k, v in extra.items() if v not in (None, "")},
    )]


# ============ Normalizers ============

def _recording_chunks(rec: WebexRecording, source: RecordSource) -> List[ContextChunk]:
    chunks = []
    for idx, cue in enumerate(parse_vtt(rec.transcript_text or "")):
        chunks.append(ContextChunk(
            key=f"{source.key}:{rec.id}:{idx}",
            source=source.name,
            source_type=source.key,
            record_id=str(rec.id),
            topic=rec.topic,
            text=cue.text,
            url=source.view_url,
            date=_iso(rec.create_time),
            extra={
                "timestamp": cue.timestamp,
                "display_time": format_timestamp(cue.timestamp),
                "download_url": rec.download_url or "",
                "host_email": rec.host_email or "",
            },
        ))
    return chunks


def _message_chunks(msg: WebexMessage, source: RecordSource) -> List[ContextChunk]:
    base = {"message_id": msg.message_id, "person_email": msg.person_email or ""}
    chunks = []
    if (msg.text or "").strip():
        chunks.append(ContextChunk(
            key=f"{source.key}:{msg.id}:msg",
            source=source.name,
            source_type=source.key,
            record_id=str(msg.id),
            topic=f"Message from {msg.person_email}",
            text=msg.text.strip(),
            url=source.view_url,
            date=_iso(msg.created),
            extra=dict(base),
        ))
    for idx, att in enumerate(msg.attachments or []):
        if not isinstance(att, dict):
            continue
        extracted = (att.get("extracted_text") or "").strip()
        if not extracted:
            continue
        chunks.append(ContextChunk(
            key=f"{source.key}:{msg.id}:att{idx}",
            source=source.name,
            source_type=source.key,
            record_id=str(msg.id),
            topic=f"Attachment: {att.get('file_name') or 'file'}",
            text=extracted,
            url=source.view_url,
            date=_iso(msg.created),
            extra={**base, "file_name": att.get("file_name") or ""},
        ))
    return chunks


def _documentation_chunks(doc: Documentation, source: RecordSource) -> List[ContextChunk]:
    text = (doc.extracted_text or "").strip() or f"Document: {doc.file_name}"
    return _single(source, doc, doc.file_name, text, when=doc.uploaded_at, uploaded_by=doc.uploaded_by)


def _issue_chunks(issue: Issue, source: RecordSource) -> List[ContextChunk]:
    text = _summary(
        f"Issue #{issue.issue_number or issue.id}: {issue.title}",
        [
            ("Type", issue.issue_type),
            ("Status", issue.status),
            ("Practice", issue.practice),
            ("Submitted by", issue.email),
        ],
        issue.description,
    )
    return _single(source, issue, issue.title, text, issue_number=issue.issue_number, status=issue.status)


def _assignment_chunks(a: ResourceAssignment, source: RecordSource) -> List[ContextChunk]:
    text = _summary(
        f"Resource Assignment #{a.assignment_number or a.id}",
        [
            ("Customer", a.customer_name),
            ("Project number", a.project_number),
            ("Practice", a.practice),
            ("Status", a.status),
            ("Region", a.region),
            ("Account Manager", a.am),
            ("Project Manager", a.pm),
            ("Resource assigned", a.resource_assigned),
            ("Project description", a.project_description),
            ("Notes", a.notes),
        ],
    )
    topic = f"{a.customer_name or 'Assignment'} #{a.assignment_number or a.id}"
    return _single(source, a, topic, text, assignment_number=a.assignment_number, status=a.status)


def _sa_assignment_chunks(a: SaAssignment, source: RecordSource) -> List[ContextChunk]:
    text = _summary(
        f"SA Assignment #{a.sa_assignment_number or a.id}",
        [
            ("Customer", a.customer_name),
            ("Opportunity", a.opportunity_name),
            ("Opportunity ID", a.opportunity_id),
            ("Practice", a.practice),
            ("Status", a.status),
            ("Region", a.region),
            ("Account Manager", a.am),
            ("SA assigned", a.sa_assigned),
            ("Notes", a.notes),
        ],
    )
    topic = f"{a.customer_name or 'SA Assignment'} - {a.opportunity_name or a.opportunity_id or a.id}"
    return _single(source, a, topic, text, sa_assignment_number=a.sa_assignment_number, status=a.status)


def _mapping_chunks(m: SaToAmMapping, source: RecordSource) -> List[ContextChunk]:
    text = _summary(
        f"{m.sa_name} is mapped to account manager {m.am_name}",
        [("Practice", m.practice), ("Region", m.region)],
    )
    return _single(source, m, f"{m.sa_name} → {m.am_name}", text)


def _cert_chunks(c: TrainingCert, source: RecordSource) -> List[ContextChunk]:
    text = _summary(
        f"Training certification: {c.name}",
        [
            ("Vendor", c.vendor),
            ("Code", c.code),
            ("Type", c.cert_type),
            ("Level", c.level),
            ("Training type", c.training_type),
            ("Practice", c.practice),
            ("Notes", c.notes),
        ],
    )
    return _single(source, c, c.name, text)


def _company_chunks(c: Company, source: RecordSource) -> List[ContextChunk]:
    text = _summary(
        f"Company: {c.name}",
        [
            ("Website", c.website),
            ("Tier", c.tier),
            ("Technology", c.technology),
            ("Practice group", c.practice_group),
        ],
    )
    return _single(source, c, c.name, text)


def _contact_chunks(c: Contact, source: RecordSource) -> List[ContextChunk]:
    text = _summary(
        f"Contact: {c.name}",
        [
            ("Email", c.email),
            ("Role", c.role),
            ("Company", c.company_name),
            ("Practice group", c.practice_group),
        ],
    )
    return _single(source, c, c.name, text)


def _user_chunks(u: User, source: RecordSource) -> List[ContextChunk]:
    # Only the public profile; credentials never reach the model
    text = _summary(
        f"User: {u.full_name}",
        [
            ("Email", u.email),
            ("Role", u.role),
            ("Practices", u.practices),
            ("Region", u.region),
            ("Administrator", "yes" if u.is_admin else ""),
        ],
    )
    return _single(source, u, u.full_name, text)


def _practice_info_chunks(p: PracticeInfoPage, source: RecordSource) -> List[ContextChunk]:
    text = _summary(
        p.title,
        [("Practices", p.practices), ("Description", p.description)],
        p.content,
    )
    return _single(source, p, p.title, text)


def _release_chunks(r: Release, source: RecordSource) -> List[ContextChunk]:
    text = _summary(f"Release {r.version}", [("Released", _iso(r.release_date))], r.notes)
    return _single(source, r, f"Release {r.version}", text, when=r.release_date)


# ============ Listing lines ============

def _recording_line(r):
    return f"{r.topic}{_details(r.host_email, _iso(r.create_time)[:10])}"


def _message_line(m):
    text = " ".join((m.text or "").split())
    if len(text) > 80:
        text = text[:80].rstrip() + "..."
    return f"{m.person_email}: {text}"


def _documentation_line(d):
    return f"{d.file_name}{_details(d.uploaded_by)}"


def _issue_line(i):
    return f"#{i.issue_number or i.id} {i.title}{_details(i.issue_type, i.status, i.practice)}"


def _assignment_line(a):
    desc = (a.project_description or "").strip()
    if len(desc) > 60:
        desc = desc[:60].rstrip() + "..."
    head = f"#{a.assignment_number or a.id} {a.customer_name or ''}".strip()
    if desc:
        head = f"{head} - {desc}"
    resource = f"resource: {a.resource_assigned}" if a.resource_assigned else ""
    return f"{head}{_details(a.status, a.practice, resource)}"


def _sa_assignment_line(a):
    head = f"#{a.sa_assignment_number or a.id} {a.customer_name or ''}".strip()
    if a.opportunity_name:
        head = f"{head} - {a.opportunity_name}"
    sa = f"SA: {a.sa_assigned}" if a.sa_assigned else ""
    return f"{head}{_details(a.status, a.practice, sa)}"


def _mapping_line(m):
    return f"{m.sa_name} → {m.am_name}{_details(m.practice, m.region)}"


def _cert_line(c):
    code = f" ({c.code})" if c.code else ""
    return f"{_clean(c.vendor) + ' ' if c.vendor else ''}{c.name}{code}{_details(c.level, c.practice)}"


def _company_line(c):
    return f"{c.name}{_details(c.tier, c.practice_group)}"


def _contact_line(c):
    email = f" <{c.email}>" if c.email else ""
    role = f" - {c.role}" if c.role else ""
    company = f" at {c.company_name}" if c.company_name else ""
    return f"{c.name}{email}{role}{company}"


def _user_line(u):
    email = f" <{u.email}>" if u.email else ""
    return f"{u.full_name}{email}{_details(u.role, u.practices)}"


def _practice_info_line(p):
    return f"{p.title}{_details(p.practices)}"


def _release_line(r):
    return f"{r.version}{_details(_iso(r.release_date))}"


def _approved_with_transcript(query):
    return query.filter(
        WebexRecording.approved.is_(True),
        WebexRecording.transcript_text.isnot(None),
        WebexRecording.transcript_text != "",
    )


SOURCES: Tuple[RecordSource, ...] = (
    RecordSource(
        key="webex_recordings", name="Webex Recordings", label="recording", plural="recordings",
        description="Approved WebEx meeting recordings with transcripts", icon="video",
        view_url="/company-education/webex-recordings", model=WebexRecording,
        list_fields=("host_email",),
        aliases=("recording", "recordings", "meeting recording", "meeting recordings"),
        normalize=_recording_chunks, list_line=_recording_line, base_filter=_approved_with_transcript,
    ),
    RecordSource(
        key="webex_messages", name="Webex Messages", label="message", plural="messages",
        description="Messages from monitored WebEx team spaces", icon="chat",
        view_url="/company-education/webex-messages", model=WebexMessage,
        list_fields=("person_email", "room_name"),
        aliases=("message", "messages", "team message", "team messages"),
        normalize=_message_chunks, list_line=_message_line,
    ),
    RecordSource(
        key="documentation", name="Documentation", label="document", plural="documents",
        description="Uploaded training documents and resources", icon="document",
        view_url="/company-education/documentation", model=Documentation,
        list_fields=("uploaded_by",),
        aliases=("document", "documents", "documentation"),
        normalize=_documentation_chunks, list_line=_documentation_line,
    ),
    RecordSource(
        key="issues", name="Practice Issues", label="issue", plural="issues",
        description="Practice issues and questions (filtered by permissions)", icon="issue",
        view_url="/practice-issues", model=Issue,
        list_fields=("issue_type", "status", "practice", "email"),
        aliases=("issue", "issues", "ticket", "tickets", "leadership question", "leadership questions"),
        normalize=_issue_chunks, list_line=_issue_line,
    ),
    RecordSource(
        key="resource_assignments", name="Resource Assignments", label="resource assignment",
        plural="resource assignments",
        description="Project resource assignments (filtered by permissions)", icon="assignment",
        view_url="/projects/resource-assignments", model=ResourceAssignment,
        list_fields=("practice", "status", "region", "am", "pm", "resource_assigned", "customer_name"),
        aliases=("assignment", "assignments", "resource assignment", "resource assignments", "project", "projects"),
        normalize=_assignment_chunks, list_line=_assignment_line,
    ),
    RecordSource(
        key="sa_assignments", name="SA Assignments", label="SA assignment", plural="SA assignments",
        description="Sales architect assignments (filtered by permissions)", icon="assignment",
        view_url="/projects/sa-assignments", model=SaAssignment,
        list_fields=("practice", "status", "region", "am", "sa_assigned", "customer_name"),
        aliases=("sa assignment", "sa assignments", "opportunity", "opportunities"),
        normalize=_sa_assignment_chunks, list_line=_sa_assignment_line,
    ),
    RecordSource(
        key="sa_to_am_mappings", name="SA to AM Mapping", label="SA to AM mapping", plural="SA to AM mappings",
        description="Sales architect to account manager mappings", icon="mapping",
        view_url="/projects/sa-to-am-mapping", model=SaToAmMapping,
        list_fields=("sa_name", "am_name", "practice", "region"),
        aliases=("mapping", "mappings", "sa to am", "sa to am mapping", "sa to am mappings"),
        normalize=_mapping_chunks, list_line=_mapping_line,
    ),
    RecordSource(
        key="training_certs", name="Training Certifications", label="training certification",
        plural="training certifications",
        description="Practice training certifications (filtered by permissions)", icon="certificate",
        view_url="/practice-information/training-certs", model=TrainingCert,
        list_fields=("practice", "vendor", "cert_type", "level", "training_type"),
        aliases=("certification", "certifications", "cert", "certs", "training cert", "training certs"),
        normalize=_cert_chunks, list_line=_cert_line,
    ),
    RecordSource(
        key="companies", name="Companies", label="company", plural="companies",
        description="Company contact information (filtered by permissions)", icon="company",
        view_url="/contact-information", model=Company,
        list_fields=("tier", "practice_group", "technology"),
        aliases=("company", "companies", "vendor companies"),
        normalize=_company_chunks, list_line=_company_line,
    ),
    RecordSource(
        key="contacts", name="Contacts", label="contact", plural="contacts",
        description="Contact information (filtered by permissions)", icon="contact",
        view_url="/contact-information", model=Contact,
        list_fields=("company_name", "practice_group", "role"),
        aliases=("contact", "contacts"),
        normalize=_contact_chunks, list_line=_contact_line,
    ),
    RecordSource(
        key="users", name="Users", label="user", plural="users",
        description="User information (filtered by permissions)", icon="user",
        view_url="/admin/users", model=User,
        list_fields=("role", "region", "practices"),
        aliases=("user", "users", "team member", "team members", "practice members"),
        normalize=_user_chunks, list_line=_user_line,
    ),
    RecordSource(
        key="practice_info", name="Practice Information", label="practice information page",
        plural="practice information pages",
        description="Practice information pages", icon="info",
        view_url="/practice-information", model=PracticeInfoPage,
        list_fields=("practices",),
        aliases=("practice info", "practice information", "info page", "info pages"),
        normalize=_practice_info_chunks, list_line=_practice_info_line,
    ),
    RecordSource(
        key="releases", name="Release Notes", label="release", plural="releases",
        description="Application release notes and features", icon="release",
        view_url="/release-notes", model=Release,
        list_fields=("version",),
        aliases=("release", "releases", "release notes"),
        normalize=_release_chunks, list_line=_release_line,
    ),
)

SOURCES_BY_KEY: Dict[str, RecordSource] = {s.key: s for s in SOURCES}


def get_source(key: str) -> Optional[RecordSource]:
    return SOURCES_BY_KEY.get((key or "").strip())


def _tenant_records(source: RecordSource, organization_id: int) -> List[Any]:
    if source.model is User:
        query = User.query.filter_by(organization_id=organization_id).order_by(User.id)
    else:
        query = source.model.for_organization(organization_id)
    if source.base_filter is not None:
        query = source.base_filter(query)
    return query.all()


def accessible_records(source: RecordSource, user) -> List[Any]:
    records, _, _ = filter_records(source.key, _tenant_records(source, user.organization_id), user)
    return records


def gather_chunks(user) -> List[ContextChunk]:
    """All chunks the user may see, in registry order."""
    chunks: List[ContextChunk] = []
    for source in SOURCES:
        for record in accessible_records(source, user):
            chunks.extend(source.normalize(record, source))
    return chunks


def organization_chunks(organization_id: int) -> List[ContextChunk]:
    """All chunks of a tenant, without per-user filtering (used for indexing)."""
    chunks: List[ContextChunk] = []
    for source in SOURCES:
        for record in _tenant_records(source, organization_id):
            chunks.extend(source.normalize(record, source))
    return chunks


def source_catalog(user) -> List[Dict[str, Any]]:
    out = []
    for source in SOURCES:
        count = len(accessible_records(source, user))
        if count > 0:
            out.append({
                "key": source.key,
                "name": source.name,
                "description": source.description,
                "count": count,
                "icon": source.icon,
            })
    return out
