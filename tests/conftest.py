"""
Test Configuration and Fixtures
"""
import hashlib
import json
from datetime import date, datetime, timezone
from types import SimpleNamespace

import pytest

from app import create_app, db
from app.models import (
    Company,
    Contact,
    Documentation,
    Issue,
    Organization,
    PracticeInfoPage,
    Release,
    ResourceAssignment,
    SaAssignment,
    SaToAmMapping,
    TrainingCert,
    User,
    UserRole,
    WebexMessage,
    WebexRecording,
)
from chatnpt import engine
from chatnpt.ranking import tokenize

EMBED_DIM = 64

TRANSCRIPT = """WEBVTT

1
00:00:05.000 --> 00:00:09.000
Welcome to the firewall migration kickoff.

2
00:02:03.500 --> 00:02:08.000
We will cut over the Palo Alto firewalls next weekend.
The rollback plan is documented.
"""


def fake_embedding(text):
    """Bag-of-words vector: texts sharing words point the same way."""
    vec = [0.0] * EMBED_DIM
    for token in tokenize(text):
        slot = int(hashlib.md5(token.encode("utf-8")).hexdigest(), 16) % EMBED_DIM
        vec[slot] += 1.0
    return vec


class FakeOpenAI:
    """Stands in for openai.OpenAI; records every call it receives."""

    def __init__(self):
        self.intent = {"intent": "answer", "record_type": None, "filters": {}}
        self.answer = "The firewall cutover is next weekend (Source 1)."
        self.stream_parts = None
        self.fail_chat = False
        self.fail_embeddings = False
        self.calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._chat_create))
        self.embeddings = SimpleNamespace(create=self._embed_create)

    def _chat_create(self, model, messages, temperature=None, max_tokens=None, stream=False):
        system = messages[0]["content"]
        if system.startswith("You are a JSON API"):
            self.calls.append(("classify", messages[-1]["content"]))
            return self._message(json.dumps(self.intent))

        self.calls.append(("stream" if stream else "complete", messages[-1]["content"]))
        if self.fail_chat:
            raise RuntimeError("model unavailable")
        if stream:
            parts = self.stream_parts if self.stream_parts is not None else [self.answer]
            return iter([
                SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=p))])
                for p in parts
            ])
        return self._message(self.answer)

    def _embed_create(self, model, input):
        self.calls.append(("embed", list(input)))
        if self.fail_embeddings:
            raise RuntimeError("embeddings unavailable")
        return SimpleNamespace(data=[SimpleNamespace(embedding=fake_embedding(t)) for t in input])

    @staticmethod
    def _message(content):
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])

    def count(self, kind):
        return sum(1 for c in self.calls if c[0] == kind)


@pytest.fixture(scope='function')
def app():
    """Create application for testing"""
    app = create_app('testing')

    with app.app_context():
        db.create_all()
        engine.reset_rate_limits()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client"""
    return app.test_client()


@pytest.fixture(scope='function')
def fake_openai(monkeypatch):
    """Replace the OpenAI client for the duration of a test"""
    fake = FakeOpenAI()
    monkeypatch.setattr("chatnpt.llm.get_client", lambda: fake)
    return fake


def _make_user(org, username, role, practices=None, is_admin=False, **kwargs):
    user = User(
        organization_id=org.id,
        username=username,
        email=f'{username}@example.com',
        first_name=kwargs.pop('first_name', username.title()),
        last_name=kwargs.pop('last_name', 'Tester'),
        role=role,
        is_admin=is_admin,
        practices=practices or [],
        **kwargs
    )
    user.set_password('testpassword123')
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture(scope='function')
def test_org(app):
    """Create test organization"""
    org = Organization(name='Test Practice', slug='test-practice', email='ops@practice.com')
    db.session.add(org)
    db.session.commit()
    return org


@pytest.fixture(scope='function')
def other_org(app):
    """Second tenant whose records must never leak"""
    org = Organization(name='Other Practice', slug='other-practice', email='ops@other.com')
    db.session.add(org)
    db.session.commit()
    return org


@pytest.fixture(scope='function')
def test_user(test_org):
    """Administrator of the test organization"""
    return _make_user(test_org, 'testuser', UserRole.ADMIN, practices=['Security'], is_admin=True, region='East')


@pytest.fixture(scope='function')
def member(test_org):
    """Ordinary practice member in Security"""
    return _make_user(test_org, 'member', UserRole.PRACTICE_MEMBER, practices=['Security'], region='East')


@pytest.fixture(scope='function')
def manager(test_org):
    """Security practice manager"""
    return _make_user(test_org, 'manager', UserRole.PRACTICE_MANAGER, practices=['Security'], region='West')


def _login(client, username):
    response = client.post('/login', json={'username': username, 'password': 'testpassword123'})
    assert response.status_code == 200
    return client


@pytest.fixture(scope='function')
def authenticated_client(client, test_user):
    """Client logged in as the administrator"""
    return _login(client, 'testuser')


@pytest.fixture(scope='function')
def member_client(client, member):
    """Client logged in as a practice member"""
    return _login(client, 'member')


@pytest.fixture(scope='function')
def records(test_org, other_org, test_user, member, manager):
    """A small but complete set of practice records"""
    when = datetime(2026, 3, 2, 15, 30, tzinfo=timezone.utc)
    org_id = test_org.id
    items = {
        'recording': WebexRecording(
            organization_id=org_id, topic='Firewall Migration Kickoff', host_email='host@example.com',
            transcript_text=TRANSCRIPT, download_url='https://webex.example.com/rec/1', approved=True,
            create_time=when,
        ),
        'unapproved': WebexRecording(
            organization_id=org_id, topic='Draft Recording', host_email='host@example.com',
            transcript_text=TRANSCRIPT, approved=False, create_time=when,
        ),
        'message': WebexMessage(
            organization_id=org_id, message_id='msg-1', room_name='Security Team',
            person_email='alice@example.com', text='Reminder: submit your CISSP renewal by Friday.',
            attachments=[{'file_name': 'renewal.pdf', 'extracted_text': 'CISSP renewal requires 40 CPE credits.'}],
            created=when,
        ),
        'document': Documentation(
            organization_id=org_id, file_name='onboarding.pdf',
            extracted_text='New hires complete onboarding training in the first week.',
            uploaded_by='testuser@example.com', uploaded_at=when,
        ),
        'issue_open': Issue(
            organization_id=org_id, issue_number=1, issue_type='Technical', title='VPN outage in lab',
            description='Lab VPN drops every hour.', status='Open', practice='Security',
            email='member@example.com',
        ),
        'issue_leadership': Issue(
            organization_id=org_id, issue_number=2, issue_type='Leadership Question',
            title='Budget for Security headcount', description='Can we hire two engineers?',
            status='Open', practice='Security', email='someone@example.com',
        ),
        'issue_leadership_net': Issue(
            organization_id=org_id, issue_number=3, issue_type='Leadership Question',
            title='Networking reorg', description='Restructure the networking bench.',
            status='Open', practice='Networking', email='someone@example.com',
        ),
        'assignment_1': ResourceAssignment(
            organization_id=org_id, assignment_number=101, practice='Security', status='Pending',
            customer_name='Acme Corp', project_description='Firewall refresh', region='East',
            am='Dana', pm='Pat',
        ),
        'assignment_2': ResourceAssignment(
            organization_id=org_id, assignment_number=102, practice='Security', status='Assigned',
            customer_name='Globex', project_description='SIEM rollout', region='West',
            resource_assigned='Member Tester',
        ),
        'assignment_3': ResourceAssignment(
            organization_id=org_id, assignment_number=103, practice='Networking', status='Pending',
            customer_name='Initech', project_description='Campus switching', region='East',
        ),
        'sa_assignment': SaAssignment(
            organization_id=org_id, sa_assignment_number=201, practice='Security', status='Pending',
            opportunity_id='OPP-9', customer_name='Acme Corp', opportunity_name='Zero Trust',
        ),
        'mapping': SaToAmMapping(
            organization_id=org_id, sa_name='Sam Architect', am_name='Dana Manager', practice='Security',
            region='East',
        ),
        'cert': TrainingCert(
            organization_id=org_id, practice='Security', cert_type='Certification', vendor='Palo Alto',
            name='PCNSE', code='PCNSE-11', level='Professional',
        ),
        'company': Company(
            organization_id=org_id, name='Palo Alto Networks', tier='Gold', practice_group='Security',
        ),
        'contact': Contact(
            organization_id=org_id, name='Jordan Rep', email='jordan@paloalto.example.com',
            role='Channel Manager', company_name='Palo Alto Networks', practice_group='Security',
        ),
        'practice_info': PracticeInfoPage(
            organization_id=org_id, title='Security Practice Overview',
            content='The Security practice covers firewalls and identity.', practices=['Security'],
        ),
        'release': Release(
            organization_id=org_id, version='5.2.0', release_date=date(2026, 2, 1),
            notes='Added ChatNPT streaming answers.',
        ),
        'foreign_doc': Documentation(
            organization_id=other_org.id, file_name='secret-firewall-plan.pdf',
            extracted_text='Other tenant firewall migration secrets.', uploaded_at=when,
        ),
    }
    db.session.add_all(items.values())
    db.session.commit()
    return items
