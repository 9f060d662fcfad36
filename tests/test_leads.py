"""
Tests for the lead routes and LeadRepository
"""
import pytest
from database import get_db_session, Lead, LeadNote, Notification
from services import LeadRepository, NotFoundError
from validators import ValidationError


@pytest.mark.integration
class TestLeadReads:
    """Tests for listing and reading leads"""

    def test_requires_session(self, client, app):
        response = client.get('/api/leads')
        assert response.status_code == 401
        assert response.get_json() == {'success': False, 'error': 'Unauthorized'}

    def test_list_only_shows_own_leads(self, client, tenant_a, tenant_b, make_lead, login):
        own = make_lead(tenant_a['business_id'], name='Own Lead')
        make_lead(tenant_b['business_id'], name='Foreign Lead')
        login(tenant_a['owner_email'])

        data = client.get('/api/leads').get_json()
        assert [lead['id'] for lead in data['leads']] == [own]

    def test_list_filters(self, client, tenant_a, make_lead, login):
        make_lead(tenant_a['business_id'], name='Alpha', status='new', priority='high')
        make_lead(tenant_a['business_id'], name='Beta', status='booked', priority='low')
        login(tenant_a['owner_email'])

        booked = client.get('/api/leads?status=booked').get_json()['leads']
        assert [lead['name'] for lead in booked] == ['Beta']

        searched = client.get('/api/leads?search=alp').get_json()['leads']
        assert [lead['name'] for lead in searched] == ['Alpha']

    def test_foreign_lead_is_not_found(self, client, tenant_a, tenant_b, make_lead, login):
        foreign = make_lead(tenant_b['business_id'])
        login(tenant_a['owner_email'])

        response = client.get(f'/api/leads/{foreign}')
        assert response.status_code == 404
        assert response.get_json()['error'] == 'Lead not found'

    def test_detail_includes_notes(self, client, tenant_a, make_lead, login):
        lead_id = make_lead(tenant_a['business_id'])
        login(tenant_a['owner_email'])
        client.post(f'/api/leads/{lead_id}/notes', json={'note': 'Called, no answer'})

        lead = client.get(f'/api/leads/{lead_id}').get_json()['lead']
        assert lead['notes'][0]['note'] == 'Called, no answer'


@pytest.mark.integration
class TestStatusUpdates:
    """Tests for single and bulk status transitions"""

    def test_update_status(self, client, tenant_a, make_lead, login):
        lead_id = make_lead(tenant_a['business_id'])
        login(tenant_a['member_email'])

        response = client.post(f'/api/leads/{lead_id}/status', json={'status': 'contacted'})
        assert response.status_code == 200
        data = response.get_json()
        assert data['message'] == 'Status updated'
        assert data['rowsUpdated'] == 1
        assert data['data']['oldStatus'] == 'new'
        assert data['data']['newStatus'] == 'contacted'

        with get_db_session() as session:
            lead = session.get(Lead, lead_id)
            assert lead.status == 'contacted'
            assert lead.last_contacted_at is not None
            notes = [n.note for n in session.query(LeadNote).filter(LeadNote.lead_id == lead_id)]
            assert "Status changed from new to contacted" in notes

    def test_invalid_status_rejected(self, client, tenant_a, make_lead, login):
        lead_id = make_lead(tenant_a['business_id'])
        login(tenant_a['owner_email'])

        response = client.post(f'/api/leads/{lead_id}/status', json={'status': 'archived'})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Invalid status'

    def test_foreign_lead_status_not_found(self, client, tenant_a, tenant_b, make_lead, login):
        foreign = make_lead(tenant_b['business_id'])
        login(tenant_a['owner_email'])

        response = client.post(f'/api/leads/{foreign}/status', json={'status': 'lost'})
        assert response.status_code == 404

        with get_db_session() as session:
            assert session.get(Lead, foreign).status == 'new'

    def test_booking_notifies_team(self, client, tenant_a, make_lead, login):
        lead_id = make_lead(tenant_a['business_id'], name='Casey')
        login(tenant_a['owner_email'])

        client.post(f'/api/leads/{lead_id}/status', json={'status': 'booked'})

        with get_db_session() as session:
            titles = [n.title for n in session.query(Notification).filter(
                Notification.business_id == tenant_a['business_id'])]
        assert titles.count('Lead Converted') == 2  # owner and member

    def test_bulk_update_skips_foreign_ids(self, client, tenant_a, tenant_b, make_lead, login):
        mine = [make_lead(tenant_a['business_id']) for _ in range(2)]
        foreign = make_lead(tenant_b['business_id'])
        login(tenant_a['owner_email'])

        response = client.patch('/api/leads/bulk/status', json={
            'leadIds': mine + [foreign], 'status': 'quoted'
        })
        assert response.status_code == 200
        data = response.get_json()
        assert data['rowsUpdated'] == 2
        assert data['message'] == '2 leads updated'

        with get_db_session() as session:
            assert session.get(Lead, foreign).status == 'new'
            assert {session.get(Lead, i).status for i in mine} == {'quoted'}

    def test_bulk_update_validates_status(self, client, tenant_a, make_lead, login):
        lead_id = make_lead(tenant_a['business_id'])
        login(tenant_a['owner_email'])

        response = client.patch('/api/leads/bulk/status', json={'leadIds': [lead_id], 'status': 'bogus'})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Invalid status'

        with get_db_session() as session:
            assert session.get(Lead, lead_id).status == 'new'
            assert session.query(LeadNote).count() == 0

    def test_bulk_update_requires_selection(self, client, tenant_a, make_lead, login):
        lead_id = make_lead(tenant_a['business_id'])
        login(tenant_a['owner_email'])
        response = client.patch('/api/leads/bulk/status', json={'leadIds': [], 'status': 'lost'})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'No leads selected'

        with get_db_session() as session:
            assert session.get(Lead, lead_id).status == 'new'
            assert session.query(LeadNote).count() == 0


@pytest.mark.integration
class TestNotes:
    """Tests for user notes and internal notes"""

    def test_add_note_records_author(self, client, tenant_a, make_lead, login):
        lead_id = make_lead(tenant_a['business_id'])
        login(tenant_a['member_email'])

        response = client.post(f'/api/leads/{lead_id}/notes', json={'note': '  Left voicemail  '})
        assert response.status_code == 200
        note = response.get_json()
        assert note['note'] == 'Left voicemail'
        assert note['user_id'] == tenant_a['member_id']

    def test_empty_note_rejected(self, client, tenant_a, make_lead, login):
        lead_id = make_lead(tenant_a['business_id'])
        login(tenant_a['owner_email'])

        response = client.post(f'/api/leads/{lead_id}/notes', json={'note': '   '})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Note is required'

    def test_internal_notes_overwrite(self, client, tenant_a, make_lead, login):
        lead_id = make_lead(tenant_a['business_id'])
        login(tenant_a['owner_email'])

        client.patch(f'/api/leads/{lead_id}/internal-notes', json={'internalNotes': 'first'})
        response = client.patch(f'/api/leads/{lead_id}/internal-notes', json={'internalNotes': 'second'})
        assert response.status_code == 200
        assert response.get_json()['data']['internal_notes'] == 'second'

    def test_internal_notes_on_foreign_lead(self, client, tenant_a, tenant_b, make_lead, login):
        foreign = make_lead(tenant_b['business_id'])
        login(tenant_a['owner_email'])

        response = client.patch(f'/api/leads/{foreign}/internal-notes', json={'internalNotes': 'x'})
        assert response.status_code == 404


@pytest.mark.unit
class TestLeadRepository:
    """Direct repository tests"""

    def test_owned_lookup_hides_foreign_leads(self, tenant_a, tenant_b, make_lead, db):
        foreign = make_lead(tenant_b['business_id'])
        with pytest.raises(NotFoundError):
            LeadRepository(db, tenant_a['business_id']).get_lead(foreign)

    def test_bulk_with_only_foreign_ids_updates_nothing(self, tenant_a, tenant_b, make_lead, db):
        foreign = make_lead(tenant_b['business_id'])
        assert LeadRepository(db, tenant_a['business_id']).bulk_update_status([foreign], 'lost') == 0

    def test_update_status_rejects_unknown_status(self, tenant_a, make_lead, db):
        lead_id = make_lead(tenant_a['business_id'])
        with pytest.raises(ValidationError) as exc:
            LeadRepository(db, tenant_a['business_id']).update_status(lead_id, 'pending')
        assert exc.value.field == 'status'
