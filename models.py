from datetime import datetime

from flask_login import UserMixin
from flask_sqlalchemy import SQLAlchemy
from werkzeug.security import generate_password_hash, check_password_hash

db = SQLAlchemy()

INCOME = 'income'
EXPENSE = 'expense'
TRANSACTION_TYPES = (INCOME, EXPENSE)

MONTHLY = 'monthly'
BUDGET_PERIODS = (MONTHLY,)

REMINDER_FREQUENCIES = ('one-time', 'weekly', 'monthly', 'yearly')


def _iso(value):
    return value.isoformat() if value is not None else None


def _money(value):
    return float(value) if value is not None else None


class User(db.Model, UserMixin):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    transactions = db.relationship('Transaction', backref='user', lazy=True, cascade='all, delete-orphan')
    budgets = db.relationship('Budget', backref='user', lazy=True, cascade='all, delete-orphan')
    reminders = db.relationship('Reminder', backref='user', lazy=True, cascade='all, delete-orphan')

    def set_password(self, pw: str):
        self.password_hash = generate_password_hash(pw)

    def check_password(self, pw: str) -> bool:
        return check_password_hash(self.password_hash, pw)

    def to_dict(self, with_timestamps: bool = False) -> dict:
        data = {'id': self.id, 'name': self.name, 'email': self.email}
        if with_timestamps:
            data['createdAt'] = _iso(self.created_at)
            data['updatedAt'] = _iso(self.updated_at)
        return data


class Transaction(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    type = db.Column(db.String(20), nullable=False)  # 'income' or 'expense'
    amount = db.Column(db.Numeric(12, 2), nullable=False)  # always positive
    category = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)
    date = db.Column(db.DateTime, nullable=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'userId': self.user_id,
            'type': self.type,
            'amount': _money(self.amount),
            'category': self.category,
            'description': self.description,
            'date': _iso(self.date),
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }


class Budget(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    category = db.Column(db.String(100), nullable=False)
    limit = db.Column(db.Numeric(12, 2), nullable=False)
    period = db.Column(db.String(20), nullable=False, default=MONTHLY)
    month = db.Column(db.Integer, nullable=False)
    year = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    __table_args__ = (
        db.UniqueConstraint('user_id', 'category', 'month', 'year', 'period', name='unique_budget'),
    )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'userId': self.user_id,
            'category': self.category,
            'limit': _money(self.limit),
            'period': self.period,
            'month': self.month,
            'year': self.year,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }


class Reminder(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=True)
    due_date = db.Column(db.DateTime, nullable=False)
    frequency = db.Column(db.String(20), nullable=False, default='one-time')
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'userId': self.user_id,
            'title': self.title,
            'amount': _money(self.amount),
            'dueDate': _iso(self.due_date),
            'frequency': self.frequency,
            'isActive': self.is_active,
            'notes': self.notes,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }
