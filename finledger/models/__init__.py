"""
SQLAlchemy ORM models package.

All models are imported here so that Base.metadata knows every table
before create_all runs, and so other modules can import from
finledger.models directly.
"""

from finledger.models.user import User, UserType  # noqa: F401
from finledger.models.project import Project, ProjectMember  # noqa: F401
from finledger.models.account import Account  # noqa: F401
from finledger.models.category import Category  # noqa: F401
from finledger.models.card_purchase import CardPurchase  # noqa: F401
from finledger.models.credit import Credit  # noqa: F401
from finledger.models.transaction import TransactionRecord  # noqa: F401
from finledger.models.billing_cycle import BillingCycle  # noqa: F401
from finledger.models.savings import SavingsFund, SavingsMovement  # noqa: F401
from finledger.models.template import Template, TemplateItem  # noqa: F401
from finledger.models.budget import Budget  # noqa: F401
