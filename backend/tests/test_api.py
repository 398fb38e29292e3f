# Overview: HTTP-level tests for authentication, bookings, transfers and balances.

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from cargodesk.extensions import db
from cargodesk.models import CashTransfer
from cargodesk.time_utils import today

from conftest import PASSWORD, auth_headers, booking_payload, get_auth_token


class TestSystem:
    def test_health(self, client, db_session):
        response = client.get('/api/health')
        assert response.status_code == 200
        assert response.json['checks']['database']['status'] == 'healthy'

    def test_version(self, client):
        response = client.get('/api/version')
        assert response.status_code == 200
        assert response.json['api_version'] == '0.1.0'


class TestAuth:
    def test_login_returns_token_and_operator(self, client, staff_a):
        response = client.post('/api/auth/login', json={'mobile': '9100000002', 'password': PASSWORD})

        assert response.status_code == 200
        assert response.json['token']
        assert response.json['user']['id'] == staff_a.id
        assert response.json['operator']['code'] == 'ALP'

    def test_wrong_password(self, client, staff_a):
        response = client.post('/api/auth/login', json={'mobile': '9100000002', 'password': 'nope'})
        assert response.status_code == 401

    def test_missing_fields(self, client, db_session):
        response = client.post('/api/auth/login', json={'mobile': '9100000002'})
        assert response.status_code == 400

    def test_protected_route_requires_token(self, client, db_session):
        assert client.get('/api/bookings').status_code == 401
        assert client.get('/api/bookings', headers=auth_headers('bogus')).status_code == 401

    def test_logout_revokes_token(self, client, staff_a):
        token = get_auth_token(client, '9100000002')
        headers = auth_headers(token)

        assert client.get('/api/auth/me', headers=headers).status_code == 200
        assert client.post('/api/auth/logout', headers=headers).status_code == 200
        assert client.get('/api/auth/me', headers=headers).status_code == 401

    def test_inactive_user_cannot_login(self, client, db_session, staff_a):
        staff_a.status = 'Inactive'
        db_session.commit()

        assert get_auth_token(client, '9100000002') is None


class TestBookingApi:
    def test_create_and_fetch_booking(self, client, staff_a, branch_a1, branch_a2):
        headers = auth_headers(get_auth_token(client, '9100000002'))

        response = client.post('/api/bookings', json=booking_payload(branch_a1, branch_a2), headers=headers)
        assert response.status_code == 201
        booking = response.json
        assert booking['booking_code'] == f"P-{today():%Y%m%d}-0001"
        assert booking['total_amount_charge'] == 150.0

        fetched = client.get(f"/api/bookings/{booking['id']}", headers=headers)
        assert fetched.status_code == 200
        assert fetched.json['status'] == 'Booked'

        balance = client.get('/api/users/me/cargo-balance', headers=headers)
        assert balance.json['cargo_balance'] == 250.0
        assert balance.json['daily_balance'] == 150.0

    def test_validation_error_format(self, client, staff_a, branch_a1):
        headers = auth_headers(get_auth_token(client, '9100000002'))

        response = client.post(
            '/api/bookings', json=booking_payload(branch_a1, branch_a1), headers=headers
        )
        assert response.status_code == 400
        assert response.json['code'] == 'VALIDATION_ERROR'
        assert response.json['error']

    def test_lifecycle_over_http(self, client, staff_a, branch_a1, branch_a2, vehicle_a):
        headers = auth_headers(get_auth_token(client, '9100000002'))
        booking_id = client.post(
            '/api/bookings', json=booking_payload(branch_a1, branch_a2, lr_type='ToPay'), headers=headers
        ).json['id']

        early = client.post(f'/api/bookings/{booking_id}/load', headers=headers)
        assert early.status_code == 400

        assigned = client.post(
            f'/api/bookings/{booking_id}/assign-vehicle', json={'vehicle_id': vehicle_a.id}, headers=headers
        )
        assert assigned.json['assigned_vehicle']['vehicle_number'] == 'TS09AB1234'

        for action, status in (('load', 'InTransit'), ('unload', 'Arrived'), ('deliver', 'Delivered')):
            response = client.post(f'/api/bookings/{booking_id}/{action}', headers=headers)
            assert response.status_code == 200
            assert response.json['status'] == status

        again = client.post(f'/api/bookings/{booking_id}/cancel', json={'reason': 'late'}, headers=headers)
        assert again.status_code == 400
        assert again.json['code'] == 'INVALID_STATUS'

        balance = client.get('/api/users/me/cargo-balance', headers=headers)
        assert balance.json['cargo_balance'] == 250.0

    def test_search_by_status(self, client, staff_a, branch_a1, branch_a2):
        headers = auth_headers(get_auth_token(client, '9100000002'))
        client.post('/api/bookings', json=booking_payload(branch_a1, branch_a2), headers=headers)

        response = client.get('/api/bookings?status=Booked', headers=headers)
        assert response.status_code == 200
        assert response.json['total_records'] == 1

        bad = client.get('/api/bookings?status=Lost', headers=headers)
        assert bad.status_code == 400


class TestCashTransferApi:
    def _request(self, client, headers, to_user_id, amount):
        return client.post(
            '/api/cash-transfers',
            json={'to_user_id': to_user_id, 'amount': amount, 'description': 'Handover'},
            headers=headers,
        )

    def test_request_and_approve_by_recipient(self, client, staff_a, staff_a2):
        sender = auth_headers(get_auth_token(client, '9100000002'))
        receiver = auth_headers(get_auth_token(client, '9100000003'))

        created = self._request(client, sender, staff_a2.id, 40)
        assert created.status_code == 201
        transfer_id = created.json['data']['id']
        assert created.json['data']['status'] == 'Pending'

        # the sender cannot approve their own request
        assert client.post(f'/api/cash-transfers/{transfer_id}/approve', headers=sender).status_code == 403

        approved = client.post(f'/api/cash-transfers/{transfer_id}/approve', headers=receiver)
        assert approved.status_code == 200
        assert approved.json['data']['status'] == 'Approved'

        second = client.post(f'/api/cash-transfers/{transfer_id}/approve', headers=receiver)
        assert second.status_code == 409
        assert second.json['code'] == 'ALREADY_PROCESSED'

        assert client.get('/api/users/me/cargo-balance', headers=sender).json['cargo_balance'] == 60.0
        assert client.get('/api/users/me/cargo-balance', headers=receiver).json['cargo_balance'] == 50.0

    def test_insufficient_balance(self, client, staff_a, staff_a2, admin_a):
        poor = auth_headers(get_auth_token(client, '9100000003'))
        admin = auth_headers(get_auth_token(client, '9100000001'))

        transfer_id = self._request(client, poor, staff_a.id, 500).json['data']['id']
        response = client.put(
            f'/api/cash-transfers/status/{transfer_id}', json={'status': 'Approved'}, headers=admin
        )

        assert response.status_code == 400
        assert response.json['code'] == 'INSUFFICIENT_BALANCE'
        assert client.get(f'/api/cash-transfers/{transfer_id}', headers=admin).json['status'] == 'Pending'

    def test_invalid_status_value(self, client, staff_a, staff_a2, admin_a):
        sender = auth_headers(get_auth_token(client, '9100000002'))
        admin = auth_headers(get_auth_token(client, '9100000001'))
        transfer_id = self._request(client, sender, staff_a2.id, 5).json['data']['id']

        response = client.put(
            f'/api/cash-transfers/status/{transfer_id}', json={'status': 'Done'}, headers=admin
        )
        assert response.status_code == 400
        assert response.json['code'] == 'INVALID_STATUS'

    def test_staff_cannot_move_someone_elses_money(self, client, staff_a, staff_a2, admin_a):
        sender = auth_headers(get_auth_token(client, '9100000002'))
        response = client.post(
            '/api/cash-transfers',
            json={'from_user_id': staff_a2.id, 'to_user_id': staff_a.id, 'amount': 5},
            headers=sender,
        )
        assert response.status_code == 403

    def test_list_non_pending(self, client, staff_a, staff_a2):
        sender = auth_headers(get_auth_token(client, '9100000002'))
        receiver = auth_headers(get_auth_token(client, '9100000003'))
        first = self._request(client, sender, staff_a2.id, 1).json['data']['id']
        self._request(client, sender, staff_a2.id, 2)
        client.post(f'/api/cash-transfers/{first}/reject', headers=receiver)

        response = client.get('/api/cash-transfers?status=NonPending', headers=sender)
        assert response.status_code == 200
        assert [row['id'] for row in response.json['data']] == [first]

    def test_ledger_view_after_transfer(self, client, staff_a, staff_a2, admin_a):
        sender = auth_headers(get_auth_token(client, '9100000002'))
        receiver = auth_headers(get_auth_token(client, '9100000003'))
        transfer_id = self._request(client, sender, staff_a2.id, 40).json['data']['id']
        client.post(f'/api/cash-transfers/{transfer_id}/approve', headers=receiver)

        mine = client.get('/api/transactions', headers=receiver)
        assert mine.json['total_records'] == 1
        assert mine.json['transactions'][0]['balance_after'] == 50.0

        # the ledger entry belongs to the receiving side
        assert client.get('/api/transactions', headers=sender).json['total_records'] == 0

    def test_sender_cannot_repoint_debit_to_another_user(self, client, staff_a, staff_a2, admin_a):
        sender = auth_headers(get_auth_token(client, '9100000003'))
        transfer_id = self._request(client, sender, staff_a.id, 5).json['data']['id']

        response = client.put(
            f'/api/cash-transfers/{transfer_id}', json={'from_user_id': admin_a.id}, headers=sender
        )
        assert response.status_code == 403

        response = client.put(
            f'/api/cash-transfers/{transfer_id}', json={'from_user_id': str(admin_a.id)}, headers=sender
        )
        assert response.status_code == 403

        admin = auth_headers(get_auth_token(client, '9100000001'))
        assert client.get(f'/api/cash-transfers/{transfer_id}', headers=admin).json['from_user_id'] == staff_a2.id

    def test_sender_may_edit_amount_and_keep_own_id(self, client, staff_a, staff_a2):
        sender = auth_headers(get_auth_token(client, '9100000003'))
        transfer_id = self._request(client, sender, staff_a.id, 5).json['data']['id']

        response = client.put(
            f'/api/cash-transfers/{transfer_id}',
            json={'from_user_id': staff_a2.id, 'amount': 7},
            headers=sender,
        )
        assert response.status_code == 200
        assert response.json['data']['amount'] == 7.0

    def test_supervisor_may_repoint_debit(self, client, staff_a, staff_a2, admin_a):
        sender = auth_headers(get_auth_token(client, '9100000003'))
        admin = auth_headers(get_auth_token(client, '9100000001'))
        transfer_id = self._request(client, sender, staff_a.id, 5).json['data']['id']

        response = client.put(
            f'/api/cash-transfers/{transfer_id}', json={'from_user_id': admin_a.id}, headers=admin
        )
        assert response.status_code == 200
        assert response.json['data']['from_user_id'] == admin_a.id

    def test_string_ids_are_coerced(self, client, staff_a, staff_a2):
        sender = auth_headers(get_auth_token(client, '9100000002'))
        response = client.post(
            '/api/cash-transfers',
            json={'from_user_id': str(staff_a.id), 'to_user_id': str(staff_a2.id), 'amount': 5},
            headers=sender,
        )
        assert response.status_code == 201
        assert response.json['data']['from_user_id'] == staff_a.id
        assert response.json['data']['to_user_id'] == staff_a2.id

    def test_malformed_ids_are_rejected(self, client, staff_a, staff_a2):
        sender = auth_headers(get_auth_token(client, '9100000002'))
        for body in (
            {'from_user_id': 'abc', 'to_user_id': staff_a2.id, 'amount': 5},
            {'from_user_id': [staff_a.id], 'to_user_id': staff_a2.id, 'amount': 5},
            {'to_user_id': '2.5', 'amount': 5},
        ):
            response = client.post('/api/cash-transfers', json=body, headers=sender)
            assert response.status_code == 400
            assert response.json['code'] == 'VALIDATION_ERROR'

    def test_non_string_status_is_rejected(self, client, staff_a, staff_a2, admin_a):
        sender = auth_headers(get_auth_token(client, '9100000002'))
        admin = auth_headers(get_auth_token(client, '9100000001'))
        transfer_id = self._request(client, sender, staff_a2.id, 5).json['data']['id']

        for status in (['Approved'], {'value': 'Approved'}, 1):
            response = client.put(
                f'/api/cash-transfers/status/{transfer_id}', json={'status': status}, headers=admin
            )
            assert response.status_code == 400
            assert response.json['code'] == 'INVALID_STATUS'

            response = client.put(
                f'/api/cash-transfers/{transfer_id}', json={'status': status}, headers=admin
            )
            assert response.status_code == 400
            assert response.json['code'] == 'INVALID_STATUS'

        assert client.get(f'/api/cash-transfers/{transfer_id}', headers=admin).json['status'] == 'Pending'

    def test_failed_commit_is_reported_not_retried(self, client, monkeypatch, staff_a, staff_a2):
        sender = auth_headers(get_auth_token(client, '9100000002'))
        failures = []
        real_commit = Session.commit

        def commit(self):
            if any(isinstance(obj, CashTransfer) for obj in self.identity_map.values()):
                failures.append(1)
                raise OperationalError("COMMIT", {}, Exception("database is locked"))
            return real_commit(self)

        monkeypatch.setattr(Session, "commit", commit)

        response = self._request(client, sender, staff_a2.id, 5)
        assert response.status_code == 500
        assert response.json['error'] == 'Failed to create cash transfer'
        assert failures == [1]

        monkeypatch.undo()
        assert db.session.query(CashTransfer).count() == 0
        assert self._request(client, sender, staff_a2.id, 5).status_code == 201


class TestRoles:
    def test_staff_cannot_create_users(self, client, staff_a):
        headers = auth_headers(get_auth_token(client, '9100000002'))
        response = client.post(
            '/api/users', json={'full_name': 'X', 'mobile': '9100000099', 'password': PASSWORD},
            headers=headers,
        )
        assert response.status_code == 403

    def test_admin_creates_user(self, client, admin_a):
        headers = auth_headers(get_auth_token(client, '9100000001'))
        response = client.post(
            '/api/users',
            json={'full_name': 'New Staff', 'mobile': '9100000099', 'password': PASSWORD},
            headers=headers,
        )
        assert response.status_code == 201
        assert response.json['role'] == 'staff'
        assert get_auth_token(client, '9100000099') is not None

    def test_revenue_report_requires_supervisor(self, client, staff_a, admin_a):
        staff = auth_headers(get_auth_token(client, '9100000002'))
        admin = auth_headers(get_auth_token(client, '9100000001'))
        url = '/api/reports/revenue?start=2025-06-01&end=2025-06-30'

        assert client.get(url, headers=staff).status_code == 403
        response = client.get(url, headers=admin)
        assert response.status_code == 200
        assert response.json['totals_row']['booking_count'] == 0

    def test_only_superuser_onboards_operators(self, client, admin_a, superuser):
        payload = {'name': 'Gamma Movers', 'code': 'GMV', 'phone': '9000000003'}
        admin = auth_headers(get_auth_token(client, '9100000001'))
        root = auth_headers(get_auth_token(client, '9999999999'))

        assert client.post('/api/operators', json=payload, headers=admin).status_code == 403
        created = client.post('/api/operators', json=payload, headers=root)
        assert created.status_code == 201
        assert created.json['booking_sequence'] == 0


class TestReportsApi:
    def _book(self, client, headers, from_branch, to_branch, **overrides):
        response = client.post('/api/bookings', json=booking_payload(from_branch, to_branch, **overrides), headers=headers)
        assert response.status_code == 201
        return response.json

    def test_consignment_lists_and_dashboard(self, client, staff_a, branch_a1, branch_a2):
        headers = auth_headers(get_auth_token(client, '9100000002'))
        self._book(client, headers, branch_a1, branch_a2)
        self._book(client, headers, branch_a2, branch_a1, lr_type='ToPay')
        day = today().isoformat()

        incoming = client.get(f'/api/reports/incoming?date={day}&branch_id={branch_a1.id}', headers=headers)
        assert incoming.status_code == 200
        assert incoming.json['total_records'] == 1
        assert incoming.json['totals_row']['vehicle_number'] == 'TOTAL'

        outgoing = client.get(f'/api/reports/outgoing?date={day}&branch_id={branch_a1.id}', headers=headers)
        assert outgoing.json['total_records'] == 1

        branches = client.get(f'/api/reports/branches?date={day}', headers=headers)
        assert [row['branch_name'] for row in branches.json['branches']] == ['Bengaluru', 'Hyderabad']

        status = client.get(f'/api/reports/status?date={day}', headers=headers)
        assert status.json['total_records'] == 2

        today_chart = client.get('/api/reports/dashboard/today', headers=headers)
        assert today_chart.json['data'] == [{'label': 'To Pay', 'value': 1}, {'label': 'Paid', 'value': 1}]

        pending = client.get('/api/reports/dashboard/pending', headers=headers)
        assert sum(row['pending'] for row in pending.json['data']) == 2

        months = client.get('/api/reports/dashboard/six-months', headers=headers)
        assert len(months.json['data']) == 6
        assert months.json['data'][-1]['paid'] == 1

    def test_bad_branch_id(self, client, staff_a, staff_b, branch_b1):
        headers = auth_headers(get_auth_token(client, '9100000002'))
        day = today().isoformat()

        response = client.get(f'/api/reports/incoming?date={day}&branch_id=abc', headers=headers)
        assert response.status_code == 400

        response = client.get(f'/api/reports/incoming?date={day}&branch_id={branch_b1.id}', headers=headers)
        assert response.status_code == 404

    def test_tracking_endpoints(self, client, staff_a, staff_b, branch_a1, branch_a2):
        headers = auth_headers(get_auth_token(client, '9100000002'))
        booking = self._book(client, headers, branch_a1, branch_a2)

        tracked = client.get(f"/api/bookings/track/{booking['booking_code']}", headers=headers)
        assert tracked.status_code == 200
        assert tracked.json['tracking'][0]['event'] == 'Booked'

        by_phone = client.get('/api/bookings/by-phone?phone=9300000001', headers=headers)
        assert [row['booking_code'] for row in by_phone.json['bookings']] == [booking['booking_code']]

        assert client.get('/api/bookings/by-phone', headers=headers).status_code == 400

        other = auth_headers(get_auth_token(client, '9200000001'))
        assert client.get(f"/api/bookings/track/{booking['booking_code']}", headers=other).status_code == 404
