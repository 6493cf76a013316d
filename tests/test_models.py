"""
Database Model Tests
"""
from app import db
from app.models import ChatHistory, Issue, Organization, User, UserRole


class TestOrganization:
    """Test Organization model"""

    def test_create_organization(self, app):
        """Should create organization"""
        org = Organization(name='Test Org', slug='test-org', email='test@org.com')
        db.session.add(org)
        db.session.commit()

        assert org.id is not None
        assert org.created_at is not None


class TestUser:
    """Test User model"""

    def test_password_hashing(self, member):
        """Passwords are hashed and verified"""
        assert member.password_hash != 'testpassword123'
        assert member.check_password('testpassword123')
        assert not member.check_password('wrong')

    def test_leadership_roles(self, member, manager):
        assert manager.is_leadership
        assert not member.is_leadership

    def test_full_name_falls_back_to_username(self, test_org):
        user = User(organization_id=test_org.id, username='solo', role=UserRole.STAFF)
        user.set_password('x')
        assert user.full_name == 'solo'

    def test_to_dict_has_no_credentials(self, member):
        data = member.to_dict()
        assert 'password_hash' not in data
        assert data['role'] == 'practice_member'
        assert data['practices'] == ['Security']


class TestTenantRecords:

    def test_for_organization_scopes_and_orders(self, records, test_org, other_org):
        issues = Issue.for_organization(test_org.id).all()
        assert [i.issue_number for i in issues] == [1, 2, 3]
        assert Issue.for_organization(other_org.id).all() == []

    def test_issue_to_dict(self, records):
        data = records['issue_open'].to_dict()
        assert data['title'] == 'VPN outage in lab'
        assert data['issue_type'] == 'Technical'


class TestChatHistory:

    def test_to_dict(self, member):
        chat = ChatHistory(
            organization_id=member.organization_id, user_id=member.id, chat_id='abc',
            title='Hello', messages=[{'role': 'user', 'content': 'hi'}],
        )
        db.session.add(chat)
        db.session.commit()
        data = chat.to_dict()
        assert data['chat_id'] == 'abc'
        assert data['messages'] == [{'role': 'user', 'content': 'hi'}]
        assert data['created_at'] is not None
