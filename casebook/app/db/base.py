from casebook.app.db.base_class import Base

# Import models to register metadata for Base.metadata.create_all in tests
from casebook.app.models.user import User  # noqa: F401
from casebook.app.models.client import Client  # noqa: F401
from casebook.app.models.case import Case  # noqa: F401
from casebook.app.models.time_entry import TimeEntry  # noqa: F401
from casebook.app.models.billing import Billing  # noqa: F401
from casebook.app.models.billing_item import BillingItem  # noqa: F401
from casebook.app.models.payment import Payment  # noqa: F401
from casebook.app.models.sequence_counter import SequenceCounter  # noqa: F401
