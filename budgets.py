import logging

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required

from exceptions import InvalidArgument, NotFound
from models import BUDGET_PERIODS, Budget, MONTHLY, db
from storage import commit_changes
from utils import get_json_body, is_blank, parse_amount, parse_month, parse_year

logger = logging.getLogger(__name__)

budget_bp = Blueprint('budget', __name__, url_prefix='/api/budget')

DUPLICATE_MESSAGE = "A budget for this category already exists for the selected period"
LIMIT_MESSAGE = "Limit must be a positive number"


def _validate_period(value):
    if value not in BUDGET_PERIODS:
        raise InvalidArgument(f"Period must be one of: {', '.join(BUDGET_PERIODS)}")
    return value


@budget_bp.route('', methods=['GET'])
@login_required
def budget_analytics():
    analytics = current_app.extensions['budget_analytics']
    report = analytics.compute_budget_report(
        current_user.id,
        month=request.args.get('month'),
        year=request.args.get('year'),
    )
    return jsonify(report.to_dict())


@budget_bp.route('', methods=['POST'])
@login_required
def create_budget():
    data = get_json_body()
    if any(is_blank(data.get(key)) for key in ('category', 'limit', 'month', 'year')):
        raise InvalidArgument("Please provide category, limit, month, and year")

    budget = Budget(
        user_id=current_user.id,
        category=str(data['category']),
        limit=parse_amount(data['limit'], LIMIT_MESSAGE),
        period=_validate_period(data.get('period') or MONTHLY),
        month=parse_month(data['month']),
        year=parse_year(data['year']),
    )
    db.session.add(budget)
    commit_changes(db.session, conflict_message=DUPLICATE_MESSAGE)
    logger.info("User %s created budget %s", current_user.id, budget.id)

    return jsonify({'message': "Budget created successfully", 'budget': budget.to_dict()}), 201


@budget_bp.route('/<int:budget_id>', methods=['PUT'])
@login_required
def update_budget(budget_id):
    budget = Budget.query.filter_by(id=budget_id, user_id=current_user.id).first()
    if budget is None:
        raise NotFound("Budget not found")
    data = get_json_body()

    if 'category' in data:
        if is_blank(data['category']):
            raise InvalidArgument("Category cannot be empty")
        budget.category = str(data['category'])
    if 'limit' in data:
        budget.limit = parse_amount(data['limit'], LIMIT_MESSAGE)
    if 'period' in data:
        budget.period = _validate_period(data['period'])
    if 'month' in data:
        budget.month = parse_month(data['month'])
    if 'year' in data:
        budget.year = parse_year(data['year'])
    commit_changes(db.session, conflict_message=DUPLICATE_MESSAGE)

    return jsonify({'message': "Budget updated successfully", 'budget': budget.to_dict()})


@budget_bp.route('/<int:budget_id>', methods=['DELETE'])
@login_required
def delete_budget(budget_id):
    budget = Budget.query.filter_by(id=budget_id, user_id=current_user.id).first()
    if budget is None:
        raise NotFound("Budget not found")
    db.session.delete(budget)
    commit_changes(db.session)
    return jsonify({'message': "Budget deleted successfully"})
