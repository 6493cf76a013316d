"""
Database Models

Key Models:
- Organization: Tenant (practice business unit owner)
- User: Belongs to organization, carries role and practice tags
- Business records: recordings, messages, documentation, issues,
  assignments, mappings, certifications, companies, contacts,
  practice info pages and release notes
- ChatHistory: Saved ChatNPT conversations
- SearchChunk: Vector index rows used by ChatNPT retrieval
- AuditLog: Compliance tracking
"""
from datetime import datetime, timezone
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
import enum
from app import db, login_manager


def _utcnow():
    return datetime.now(timezone.utc)


class UserRole(enum.Enum):
    ADMIN = "admin"
    PRACTICE_MANAGER = "practice_manager"
    PRACTICE_PRINCIPAL = "practice_principal"
    PRACTICE_MEMBER = "practice_member"
    ACCOUNT_MANAGER = "account_manager"
    PROJECT_MANAGER = "project_manager"
    SOLUTIONS_ARCHITECT = "solutions_architect"
    STAFF = "staff"


LEADERSHIP_ROLES = (UserRole.PRACTICE_MANAGER, UserRole.PRACTICE_PRINCIPAL)


class Organization(db.Model):
    __tablename__ = 'organizations'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(100), unique=True, nullable=False)
    email = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    users = db.relationship('User', back_populates='organization', lazy='dynamic')


class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(db.Integer, db.ForeignKey('organizations.id'), nullable=False)
    username = db.Column(db.String(100), unique=True, nullable=False)
    email = db.Column(db.String(255), nullable=True, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(100))
    last_name = db.Column(db.String(100))
    role = db.Column(db.Enum(UserRole), default=UserRole.PRACTICE_MEMBER)
    is_admin = db.Column(db.Boolean, default=False)
    practices = db.Column(db.JSON, default=list)  # e.g. ["Security", "Networking"]
    region = db.Column(db.String(100))
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    organization = db.relationship('Organization', back_populates='users')

    @property
    def full_name(self):
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or self.username

    @property
    def is_leadership(self):
        return self.role in LEADERSHIP_ROLES

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        """Public user summary (never includes credentials)"""
        return {
            'id': self.id,
            'organization_id': self.organization_id,
            'username': self.username,
            'email': self.email,
            'name': self.full_name,
            'role': self.role.value if self.role else None,
            'is_admin': bool(self.is_admin),
            'practices': list(self.practices or []),
            'region': self.region,
        }


@login_manager.user_loader
def load_user(user_id):
    """Load user by ID"""
    return db.session.get(User, int(user_id))


class TenantMixin:
    """Columns shared by every tenant-scoped business record"""
    id = db.Column(db.Integer, primary_key=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    @classmethod
    def for_organization(cls, organization_id):
        return cls.query.filter_by(organization_id=organization_id).order_by(cls.id)


class WebexRecording(TenantMixin, db.Model):
    __tablename__ = 'webex_recordings'

    organization_id = db.Column(db.Integer, db.ForeignKey('organizations.id'), nullable=False, index=True)
    topic = db.Column(db.String(255), nullable=False)
    host_email = db.Column(db.String(255))
    transcript_text = db.Column(db.Text)  # WebVTT
    download_url = db.Column(db.String(1000))
    approved = db.Column(db.Boolean, default=False)
    create_time = db.Column(db.DateTime(timezone=True))


class WebexMessage(TenantMixin, db.Model):
    __tablename__ = 'webex_messages'

    organization_id = db.Column(db.Integer, db.ForeignKey('organizations.id'), nullable=False, index=True)
    message_id = db.Column(db.String(255), nullable=False)
    room_name = db.Column(db.String(255))
    person_email = db.Column(db.String(255))
    text = db.Column(db.Text)
    attachments = db.Column(db.JSON, default=list)  # [{"file_name": ..., "extracted_text": ...}]
    created = db.Column(db.DateTime(timezone=True))


class Documentation(TenantMixin, db.Model):
    __tablename__ = 'documentation'

    organization_id = db.Column(db.Integer, db.ForeignKey('organizations.id'), nullable=False, index=True)
    file_name = db.Column(db.String(255), nullable=False)
    extracted_text = db.Column(db.Text)
    uploaded_by = db.Column(db.String(255))
    uploaded_at = db.Column(db.DateTime(timezone=True))


class Issue(TenantMixin, db.Model):
    __tablename__ = 'issues'

    organization_id = db.Column(db.Integer, db.ForeignKey('organizations.id'), nullable=False, index=True)
    issue_number = db.Column(db.Integer)
    issue_type = db.Column(db.String(100), nullable=False)  # e.g. "Leadership Question"
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    status = db.Column(db.String(50), default='Open')
    practice = db.Column(db.String(100))
    email = db.Column(db.String(255))  # creator

    def to_dict(self):
        return {
            'id': self.id,
            'issue_number': self.issue_number,
            'issue_type': self.issue_type,
            'title': self.title,
            'description': self.description,
            'status': self.status,
            'practice': self.practice,
            'email': self.email,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class ResourceAssignment(TenantMixin, db.Model):
    __tablename__ = 'resource_assignments'

    organization_id = db.Column(db.Integer, db.ForeignKey('organizations.id'), nullable=False, index=True)
    assignment_number = db.Column(db.Integer)
    practice = db.Column(db.String(100))
    status = db.Column(db.String(50), default='Pending')
    project_number = db.Column(db.String(100))
    customer_name = db.Column(db.String(255))
    project_description = db.Column(db.Text)
    region = db.Column(db.String(100))
    am = db.Column(db.String(255))
    pm = db.Column(db.String(255))
    resource_assigned = db.Column(db.String(255))
    notes = db.Column(db.Text)


class SaAssignment(TenantMixin, db.Model):
    __tablename__ = 'sa_assignments'

    organization_id = db.Column(db.Integer, db.ForeignKey('organizations.id'), nullable=False, index=True)
    sa_assignment_number = db.Column(db.Integer)
    practice = db.Column(db.String(100))
    status = db.Column(db.String(50), default='Pending')
    opportunity_id = db.Column(db.String(100))
    customer_name = db.Column(db.String(255))
    opportunity_name = db.Column(db.String(255))
    region = db.Column(db.String(100))
    am = db.Column(db.String(255))
    sa_assigned = db.Column(db.String(255))
    notes = db.Column(db.Text)


class SaToAmMapping(TenantMixin, db.Model):
    __tablename__ = 'sa_to_am_mappings'

    organization_id = db.Column(db.Integer, db.ForeignKey('organizations.id'), nullable=False, index=True)
    sa_name = db.Column(db.String(255), nullable=False)
    am_name = db.Column(db.String(255), nullable=False)
    practice = db.Column(db.String(100))
    region = db.Column(db.String(100))


class TrainingCert(TenantMixin, db.Model):
    __tablename__ = 'training_certs'

    organization_id = db.Column(db.Integer, db.ForeignKey('organizations.id'), nullable=False, index=True)
    practice = db.Column(db.String(100))
    cert_type = db.Column(db.String(100))
    vendor = db.Column(db.String(100))
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(100))
    level = db.Column(db.String(100))
    training_type = db.Column(db.String(100))
    notes = db.Column(db.Text)


class Company(TenantMixin, db.Model):
    __tablename__ = 'companies'

    organization_id = db.Column(db.Integer, db.ForeignKey('organizations.id'), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    website = db.Column(db.String(500))
    tier = db.Column(db.String(50))
    technology = db.Column(db.String(255))
    practice_group = db.Column(db.String(100))


class Contact(TenantMixin, db.Model):
    __tablename__ = 'contacts'

    organization_id = db.Column(db.Integer, db.ForeignKey('organizations.id'), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255))
    role = db.Column(db.String(255))
    company_name = db.Column(db.String(255))
    practice_group = db.Column(db.String(100))


class PracticeInfoPage(TenantMixin, db.Model):
    __tablename__ = 'practice_info_pages'

    organization_id = db.Column(db.Integer, db.ForeignKey('organizations.id'), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    content = db.Column(db.Text)
    practices = db.Column(db.JSON, default=list)


class Release(TenantMixin, db.Model):
    __tablename__ = 'releases'

    organization_id = db.Column(db.Integer, db.ForeignKey('organizations.id'), nullable=False, index=True)
    version = db.Column(db.String(50), nullable=False)
    release_date = db.Column(db.Date)
    notes = db.Column(db.Text)


class ChatHistory(db.Model):
    """Saved ChatNPT conversation, owned by a single user"""
    __tablename__ = 'chat_history'

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(db.Integer, db.ForeignKey('organizations.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    chat_id = db.Column(db.String(64), unique=True, nullable=False)
    title = db.Column(db.String(255), nullable=False, default='New Chat')
    messages = db.Column(db.JSON, default=list)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            'chat_id': self.chat_id,
            'title': self.title,
            'messages': list(self.messages or []),
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


class SearchChunk(db.Model):
    """
    One embedded ChatNPT context chunk.

    chunk_key matches ContextChunk.key so vector hits can be joined back to the
    permission-filtered chunk set at query time.
    """
    __tablename__ = 'search_chunks'
    __table_args__ = (
        db.UniqueConstraint('organization_id', 'chunk_key', name='uq_search_chunks_org_key'),
    )

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(db.Integer, db.ForeignKey('organizations.id'), nullable=False, index=True)
    chunk_key = db.Column(db.String(255), nullable=False)
    source_type = db.Column(db.String(50), nullable=False)
    record_id = db.Column(db.String(100), nullable=False)
    content_hash = db.Column(db.String(64), nullable=False)
    embedding = db.Column(db.JSON, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class AuditLog(db.Model):
    __tablename__ = 'audit_logs'

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(db.Integer, db.ForeignKey('organizations.id'))
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    event_type = db.Column(db.String(100), nullable=False)
    event_description = db.Column(db.Text)
    ip_address = db.Column(db.String(45))
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
