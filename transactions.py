import logging
import math
from datetime import datetime

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required
from sqlalchemy import or_

from analytics import category_breakdown, month_date_range
from exceptions import InvalidArgument, NotFound
from models import Transaction, TRANSACTION_TYPES, db
from storage import commit_changes
from utils import get_json_body, is_blank, parse_amount, parse_amount_bound, parse_datetime, parse_int

logger = logging.getLogger(__name__)

transactions_bp = Blueprint('transactions', __name__, url_prefix='/api/transactions')

TYPE_MESSAGE = "Type must be 'income' or 'expense'"


def _get_owned_transaction(transaction_id: int) -> Transaction:
    tx = Transaction.query.filter_by(id=transaction_id, user_id=current_user.id).first()
    if tx is None:
        raise NotFound("Transaction not found")
    return tx


def _validate_type(value):
    if value not in TRANSACTION_TYPES:
        raise InvalidArgument(TYPE_MESSAGE)
    return value


@transactions_bp.route('', methods=['GET'])
@login_required
def list_transactions():
    args = request.args
    page = parse_int(args.get('page', '1'), 'page')
    limit = parse_int(args.get('limit', current_app.config['DEFAULT_PAGE_SIZE']), 'limit')
    if page < 1 or limit < 1:
        raise InvalidArgument("page and limit must be positive integers")
    limit = min(limit, current_app.config['MAX_PAGE_SIZE'])

    query = Transaction.query.filter(Transaction.user_id == current_user.id)

    search = args.get('search', '')
    if search:
        query = query.filter(or_(
            Transaction.description.contains(search, autoescape=True),
            Transaction.category.contains(search, autoescape=True),
        ))
    category = args.get('category', '')
    if category:
        query = query.filter(Transaction.category == category)
    tx_type = args.get('type', '')
    if tx_type in TRANSACTION_TYPES:
        query = query.filter(Transaction.type == tx_type)

    start_date = args.get('startDate', '')
    if start_date:
        query = query.filter(Transaction.date >= parse_datetime(start_date, 'startDate'))
    end_date = args.get('endDate', '')
    if end_date:
        query = query.filter(Transaction.date <= parse_datetime(end_date, 'endDate'))

    min_amount = args.get('minAmount', '')
    if min_amount:
        query = query.filter(Transaction.amount >= parse_amount_bound(min_amount, 'minAmount'))
    max_amount = args.get('maxAmount', '')
    if max_amount:
        query = query.filter(Transaction.amount <= parse_amount_bound(max_amount, 'maxAmount'))

    sort_by = args.get('sortBy', 'date')
    ascending = args.get('sortOrder', 'desc') == 'asc'
    if sort_by == 'date':
        order = Transaction.date.asc() if ascending else Transaction.date.desc()
    elif sort_by == 'amount':
        order = Transaction.amount.asc() if ascending else Transaction.amount.desc()
    else:
        order = Transaction.created_at.desc()

    total = query.count()
    rows = query.order_by(order, Transaction.id.desc()).offset((page - 1) * limit).limit(limit).all()

    return jsonify({
        'transactions': [tx.to_dict() for tx in rows],
        'pagination': {
            'page': page,
            'limit': limit,
            'total': total,
            'totalPages': math.ceil(total / limit),
        },
    })


@transactions_bp.route('', methods=['POST'])
@login_required
def create_transaction():
    data = get_json_body()
    if any(is_blank(data.get(key)) for key in ('type', 'amount', 'category', 'date')):
        raise InvalidArgument("Please provide type, amount, category, and date")

    tx = Transaction(
        user_id=current_user.id,
        type=_validate_type(data['type']),
        amount=parse_amount(data['amount']),
        category=str(data['category']),
        description=data.get('description') or None,
        date=parse_datetime(data['date']),
    )
    db.session.add(tx)
    commit_changes(db.session)

    return jsonify({'message': "Transaction created successfully", 'transaction': tx.to_dict()}), 201


@transactions_bp.route('/<int:transaction_id>', methods=['PUT'])
@login_required
def update_transaction(transaction_id):
    tx = _get_owned_transaction(transaction_id)
    data = get_json_body()

    if 'type' in data:
        tx.type = _validate_type(data['type'])
    if 'amount' in data:
        tx.amount = parse_amount(data['amount'])
    if 'category' in data:
        if is_blank(data['category']):
            raise InvalidArgument("Category cannot be empty")
        tx.category = str(data['category'])
    if 'description' in data:
        tx.description = data['description']
    if 'date' in data:
        tx.date = parse_datetime(data['date'])
    commit_changes(db.session)

    return jsonify({'message': "Transaction updated successfully", 'transaction': tx.to_dict()})


@transactions_bp.route('/<int:transaction_id>', methods=['DELETE'])
@login_required
def delete_transaction(transaction_id):
    tx = _get_owned_transaction(transaction_id)
    db.session.delete(tx)
    commit_changes(db.session)
    return jsonify({'message': "Transaction deleted successfully"})


@transactions_bp.route('/summary', methods=['GET'])
@login_required
def summary():
    # Params: range=month|year, start=YYYY-MM-DD, end=YYYY-MM-DD
    rng = request.args.get('range', 'month')
    start = request.args.get('start')
    end = request.args.get('end')
    if start and end:
        start_dt = parse_datetime(start, 'start')
        end_dt = parse_datetime(end, 'end').replace(hour=23, minute=59, second=59)
    else:
        now = current_app.extensions['budget_analytics'].clock()
        if rng == 'year':
            start_dt = datetime(now.year, 1, 1)
        else:
            start_dt = month_date_range(now.year, now.month)[0]
        end_dt = now.replace(hour=23, minute=59, second=59, microsecond=0)
    if start_dt > end_dt:
        raise InvalidArgument("start must not be after end")

    rows = Transaction.query.filter(
        Transaction.user_id == current_user.id,
        Transaction.date >= start_dt,
        Transaction.date <= end_dt,
    ).all()
    breakdown = category_breakdown(rows)
    breakdown.update({'start': start_dt.date().isoformat(), 'end': end_dt.date().isoformat()})
    return jsonify(breakdown)
