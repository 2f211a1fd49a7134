"""
Tests for the /api/transactions endpoints.
"""

import pytest


def _create(client, headers, **overrides):
    payload = {
        'type': 'expense',
        'amount': 25.5,
        'category': 'Food',
        'description': 'Groceries',
        'date': '2024-03-05',
    }
    payload.update(overrides)
    return client.post('/api/transactions', headers=headers, json=payload)


@pytest.fixture
def sample(client, auth_headers):
    """A small ledger spread over February and March 2024."""
    rows = [
        dict(type='income', amount=3000, category='Salary', description='March pay', date='2024-03-01'),
        dict(type='expense', amount=120, category='Food', description='Market', date='2024-03-05'),
        dict(type='expense', amount=450, category='Food', description='Dinner party', date='2024-03-20'),
        dict(type='expense', amount=900, category='Rent', description='Flat', date='2024-03-02'),
        dict(type='expense', amount=60, category='Food', description='Lunch', date='2024-02-14'),
    ]
    for row in rows:
        assert _create(client, auth_headers, **row).status_code == 201
    return rows


class TestCreateTransaction:
    """Tests for POST /api/transactions."""

    def test_create(self, client, auth_headers):
        """A valid transaction is stored and echoed back."""
        response = _create(client, auth_headers)
        data = response.get_json()

        assert response.status_code == 201
        assert data['message'] == "Transaction created successfully"
        assert data['transaction']['amount'] == 25.5
        assert data['transaction']['date'] == '2024-03-05T00:00:00'
        assert data['transaction']['type'] == 'expense'

    def test_missing_fields(self, client, auth_headers):
        """type, amount, category and date are required."""
        response = client.post('/api/transactions', headers=auth_headers, json={'type': 'expense'})
        assert response.status_code == 400
        assert response.get_json()['message'] == "Please provide type, amount, category, and date"

    def test_invalid_type(self, client, auth_headers):
        """Only income and expense are accepted."""
        response = _create(client, auth_headers, type='transfer')
        assert response.status_code == 400
        assert response.get_json()['message'] == "Type must be 'income' or 'expense'"

    @pytest.mark.parametrize('amount', [-5, 0, 'abc', 'NaN', '0.004', '12.345', '10000000000'])
    def test_invalid_amount(self, client, auth_headers, amount):
        """Amounts must be positive numbers."""
        response = _create(client, auth_headers, amount=amount)
        assert response.status_code == 400
        assert response.get_json()['message'] == "Amount must be a positive number"

    def test_sub_cent_amount_not_stored(self, client, auth_headers):
        """An amount that would round to zero leaves no row behind."""
        assert _create(client, auth_headers, amount='0.004').status_code == 400
        data = client.get('/api/transactions', headers=auth_headers).get_json()
        assert data['pagination']['total'] == 0

    def test_invalid_date(self, client, auth_headers):
        """Dates must be ISO-8601."""
        response = _create(client, auth_headers, date='05/03/2024')
        assert response.status_code == 400

    def test_requires_auth(self, client):
        """Creating without a token is 401."""
        response = client.post('/api/transactions', json={})
        assert response.status_code == 401


class TestListTransactions:
    """Tests for GET /api/transactions."""

    def test_default_sort_newest_first(self, client, auth_headers, sample):
        """Without options, transactions are sorted by date descending."""
        data = client.get('/api/transactions', headers=auth_headers).get_json()
        dates = [tx['date'][:10] for tx in data['transactions']]

        assert dates == sorted(dates, reverse=True)
        assert data['pagination'] == {'page': 1, 'limit': 10, 'total': 5, 'totalPages': 1}

    def test_pagination(self, client, auth_headers, sample):
        """page and limit slice the result."""
        data = client.get('/api/transactions?page=2&limit=2', headers=auth_headers).get_json()

        assert len(data['transactions']) == 2
        assert data['pagination'] == {'page': 2, 'limit': 2, 'total': 5, 'totalPages': 3}

    def test_limit_is_capped(self, client, auth_headers, sample):
        """Requests above the maximum page size are capped."""
        data = client.get('/api/transactions?limit=5000', headers=auth_headers).get_json()
        assert data['pagination']['limit'] == 100

    def test_bad_page(self, client, auth_headers):
        """Non-numeric paging is rejected."""
        response = client.get('/api/transactions?page=first', headers=auth_headers)
        assert response.status_code == 400

    def test_filter_by_type_and_category(self, client, auth_headers, sample):
        """type and category narrow the list."""
        data = client.get('/api/transactions?type=expense&category=Food', headers=auth_headers).get_json()
        assert {tx['category'] for tx in data['transactions']} == {'Food'}
        assert data['pagination']['total'] == 3

    def test_unknown_type_is_ignored(self, client, auth_headers, sample):
        """An unrecognised type filter is not applied."""
        data = client.get('/api/transactions?type=transfer', headers=auth_headers).get_json()
        assert data['pagination']['total'] == 5

    def test_search(self, client, auth_headers, sample):
        """search matches description or category."""
        data = client.get('/api/transactions?search=party', headers=auth_headers).get_json()
        assert [tx['description'] for tx in data['transactions']] == ['Dinner party']

        data = client.get('/api/transactions?search=Rent', headers=auth_headers).get_json()
        assert [tx['category'] for tx in data['transactions']] == ['Rent']

    def test_date_and_amount_range(self, client, auth_headers, sample):
        """Date and amount bounds are inclusive."""
        query = 'startDate=2024-03-01&endDate=2024-03-05&minAmount=120&maxAmount=900'
        data = client.get(f'/api/transactions?{query}', headers=auth_headers).get_json()
        assert sorted(tx['amount'] for tx in data['transactions']) == [120.0, 900.0]

    def test_zero_amount_bound(self, client, auth_headers, sample):
        """A zero lower bound is accepted and keeps every row."""
        response = client.get('/api/transactions?minAmount=0', headers=auth_headers)
        assert response.status_code == 200
        assert response.get_json()['pagination']['total'] == 5

    def test_negative_amount_bound(self, client, auth_headers):
        """Negative bounds are rejected."""
        response = client.get('/api/transactions?maxAmount=-1', headers=auth_headers)
        assert response.status_code == 400
        assert response.get_json()['message'] == "maxAmount must be a non-negative number"

    def test_search_wildcards_are_literal(self, client, auth_headers, sample):
        """% and _ in search match themselves rather than any text."""
        _create(client, auth_headers, description='50% off sale')

        data = client.get('/api/transactions?search=50%25', headers=auth_headers).get_json()
        assert [tx['description'] for tx in data['transactions']] == ['50% off sale']

        data = client.get('/api/transactions?search=Lu_ch', headers=auth_headers).get_json()
        assert data['transactions'] == []

    def test_sort_by_amount_ascending(self, client, auth_headers, sample):
        """sortBy=amount&sortOrder=asc orders by amount."""
        data = client.get('/api/transactions?sortBy=amount&sortOrder=asc', headers=auth_headers).get_json()
        amounts = [tx['amount'] for tx in data['transactions']]
        assert amounts == sorted(amounts)

    def test_other_users_rows_hidden(self, client, signup, sample):
        """A second user sees none of the first user's transactions."""
        other = signup(email='other@example.com')
        data = client.get('/api/transactions', headers=other).get_json()
        assert data['transactions'] == []
        assert data['pagination']['totalPages'] == 0


class TestUpdateDeleteTransaction:
    """Tests for PUT and DELETE /api/transactions/<id>."""

    def test_partial_update(self, client, auth_headers):
        """Only supplied fields change."""
        tx_id = _create(client, auth_headers).get_json()['transaction']['id']
        response = client.put(f'/api/transactions/{tx_id}', headers=auth_headers, json={'amount': '30.00'})
        data = response.get_json()['transaction']

        assert response.status_code == 200
        assert data['amount'] == 30.0
        assert data['category'] == 'Food'

    def test_update_validates(self, client, auth_headers):
        """Updates use the same validation as creation."""
        tx_id = _create(client, auth_headers).get_json()['transaction']['id']
        response = client.put(f'/api/transactions/{tx_id}', headers=auth_headers, json={'type': 'gift'})
        assert response.status_code == 400

    def test_delete(self, client, auth_headers):
        """Deleted transactions disappear from the list."""
        tx_id = _create(client, auth_headers).get_json()['transaction']['id']
        response = client.delete(f'/api/transactions/{tx_id}', headers=auth_headers)

        assert response.status_code == 200
        assert response.get_json()['message'] == "Transaction deleted successfully"
        assert client.get('/api/transactions', headers=auth_headers).get_json()['transactions'] == []

    def test_cannot_touch_other_users_rows(self, client, signup):
        """Another user's transaction reads as not found."""
        owner = signup(email='owner@example.com')
        intruder = signup(email='intruder@example.com')
        tx_id = _create(client, owner).get_json()['transaction']['id']

        assert client.put(f'/api/transactions/{tx_id}', headers=intruder, json={'amount': 1}).status_code == 404
        assert client.delete(f'/api/transactions/{tx_id}', headers=intruder).status_code == 404


class TestSummary:
    """Tests for GET /api/transactions/summary."""

    def test_explicit_range(self, client, auth_headers, sample):
        """Expenses in the range are grouped by category, largest first."""
        data = client.get('/api/transactions/summary?start=2024-03-01&end=2024-03-31',
                          headers=auth_headers).get_json()

        assert data['labels'] == ['Rent', 'Food']
        assert data['values'] == [900.0, 570.0]
        assert data['total'] == 1470.0
        assert (data['start'], data['end']) == ('2024-03-01', '2024-03-31')

    def test_default_month_uses_clock(self, client, auth_headers, sample):
        """Without dates the current month up to today is used."""
        data = client.get('/api/transactions/summary', headers=auth_headers).get_json()

        assert (data['start'], data['end']) == ('2024-03-01', '2024-03-15')
        assert data['values'] == [900.0, 120.0]

    def test_year_range(self, client, auth_headers, sample):
        """range=year starts on January 1."""
        data = client.get('/api/transactions/summary?range=year', headers=auth_headers).get_json()

        assert data['start'] == '2024-01-01'
        assert data['total'] == 1080.0

    def test_empty(self, client, auth_headers):
        """No expenses yields empty series."""
        data = client.get('/api/transactions/summary', headers=auth_headers).get_json()
        assert data['labels'] == [] and data['total'] == 0
