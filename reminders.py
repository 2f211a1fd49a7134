from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from exceptions import InvalidArgument, NotFound
from models import REMINDER_FREQUENCIES, Reminder, db
from storage import commit_changes
from utils import get_json_body, is_blank, parse_bool, parse_datetime, parse_int, parse_optional_amount

reminders_bp = Blueprint('reminders', __name__, url_prefix='/api/reminders')


@reminders_bp.route('', methods=['POST'])
@login_required
def save_reminder():
    """Create a reminder, or update one when the body carries its id."""
    data = get_json_body()
    if is_blank(data.get('title')) or is_blank(data.get('dueDate')):
        raise InvalidArgument("Please provide title and dueDate")

    frequency = data.get('frequency') or 'one-time'
    if frequency not in REMINDER_FREQUENCIES:
        raise InvalidArgument(f"Frequency must be one of: {', '.join(REMINDER_FREQUENCIES)}")

    fields = {
        'title': str(data['title']),
        'amount': parse_optional_amount(data.get('amount')),
        'due_date': parse_datetime(data['dueDate'], 'dueDate'),
        'frequency': frequency,
        'is_active': parse_bool(data['isActive']) if data.get('isActive') is not None else True,
        'notes': data.get('notes') or None,
    }

    reminder_id = data.get('id')
    if reminder_id:
        reminder = Reminder.query.filter_by(
            id=parse_int(reminder_id, 'id'), user_id=current_user.id
        ).first()
        if reminder is None:
            raise NotFound("Reminder not found")
        for name, value in fields.items():
            setattr(reminder, name, value)
    else:
        reminder = Reminder(user_id=current_user.id, **fields)
        db.session.add(reminder)
    commit_changes(db.session)

    if reminder_id:
        return jsonify({'message': "Reminder updated successfully", 'reminder': reminder.to_dict()})
    return jsonify({'message': "Reminder created successfully", 'reminder': reminder.to_dict()}), 201


@reminders_bp.route('', methods=['GET'])
@login_required
def list_reminders():
    query = Reminder.query.filter(Reminder.user_id == current_user.id)
    is_active = request.args.get('isActive')
    if is_active is not None:
        query = query.filter(Reminder.is_active == (is_active == 'true'))
    reminders = query.order_by(Reminder.due_date.asc()).all()
    return jsonify({'reminders': [r.to_dict() for r in reminders]})
