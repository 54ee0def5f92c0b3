import pytest
from datetime import date
from decimal import Decimal

from casebook.app.core.errors import NotFoundError, ValidationError
from casebook.app.db.base import Base
from casebook.app.db.session import SessionLocal, engine
from casebook.app.models.billing import Billing
from casebook.app.models.case import Case
from casebook.app.models.client import Client
from casebook.app.models.user import User
from casebook.app.schemas.billing import BillingCreate
from casebook.app.schemas.payment import PaymentCreate, PaymentUpdate
from casebook.app.services.billing import create_billing, delete_billing
from casebook.app.services.payments import (
    create_payment,
    delete_payment,
    list_payments_for_billing,
    update_payment,
)


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def _billing(db, price):
    user = User(email="cashier@example.com", hashed_password="x", first_name="Ben")
    client = Client(client_number="000001", company_name="Acme Holdings")
    db.add_all([user, client])
    db.flush()
    case = Case(case_number="CAS-000001", title="Acme v. Doe", client_id=client.id)
    db.add(case)
    db.commit()
    payload = BillingCreate(
        title="Advisory",
        case_id=case.id,
        billing_type="oneTime",
        billing_start=date(2030, 1, 1),
        due_date=date(2030, 2, 1),
        items=[{"particulars": "Advice", "quantity": 1, "price": price}],
    )
    return user, create_billing(db, payload, user)


def _status(db, billing_id):
    db.expire_all()
    return db.get(Billing, billing_id).status


def test_full_payment_marks_billing_paid(db):
    user, billing = _billing(db, 500)
    payment = create_payment(
        db,
        billing.id,
        PaymentCreate(amount=Decimal("500"), payment_method="cheque", payment_date=date(2030, 1, 10)),
        user,
    )
    assert payment.id is not None
    assert payment.received_by_id == user.id
    assert payment.payment_method == "cheque"
    assert _status(db, billing.id) == "paid"
    assert db.get(Billing, billing.id).paid_amount == Decimal("500.00")


def test_partial_then_overpayment(db):
    user, billing = _billing(db, 300)
    create_payment(db, billing.id, PaymentCreate(amount=Decimal("100")), user)
    assert _status(db, billing.id) == "partiallyPaid"
    create_payment(db, billing.id, PaymentCreate(amount=Decimal("250")), user)
    assert _status(db, billing.id) == "overPaid"
    assert db.get(Billing, billing.id).paid_amount == Decimal("350.00")


def test_payment_date_defaults_to_today(db):
    user, billing = _billing(db, 100)
    payment = create_payment(db, billing.id, PaymentCreate(amount=Decimal("10")), user)
    assert isinstance(payment.payment_date, date)


@pytest.mark.parametrize("amount", ["0", "-5", "0.001"])
def test_non_positive_amount_rejected(db, amount):
    user, billing = _billing(db, 100)
    with pytest.raises(ValidationError):
        create_payment(db, billing.id, PaymentCreate(amount=Decimal(amount)), user)
    assert list_payments_for_billing(db, billing.id) == []


def test_payment_against_missing_billing(db):
    user, _ = _billing(db, 100)
    with pytest.raises(NotFoundError):
        create_payment(db, 999, PaymentCreate(amount=Decimal("10")), user)


def test_payment_against_deleted_billing(db):
    user, billing = _billing(db, 100)
    delete_billing(db, billing.id, user)
    with pytest.raises(NotFoundError):
        create_payment(db, billing.id, PaymentCreate(amount=Decimal("10")), user)


def test_update_payment_recomputes_status(db):
    user, billing = _billing(db, 300)
    payment = create_payment(db, billing.id, PaymentCreate(amount=Decimal("300")), user)
    assert _status(db, billing.id) == "paid"

    updated = update_payment(db, payment.id, PaymentUpdate(amount=Decimal("120"), note="Corrected"), user)
    assert updated.amount == Decimal("120.00")
    assert updated.note == "Corrected"
    assert _status(db, billing.id) == "partiallyPaid"


def test_update_payment_rejects_bad_amount_and_missing_payment(db):
    user, billing = _billing(db, 300)
    payment = create_payment(db, billing.id, PaymentCreate(amount=Decimal("300")), user)
    with pytest.raises(ValidationError):
        update_payment(db, payment.id, PaymentUpdate(amount=Decimal("0")), user)
    with pytest.raises(NotFoundError):
        update_payment(db, 999, PaymentUpdate(note="x"), user)


def test_delete_payment_recomputes_status(db):
    user, billing = _billing(db, 300)
    first = create_payment(db, billing.id, PaymentCreate(amount=Decimal("100")), user)
    create_payment(db, billing.id, PaymentCreate(amount=Decimal("200")), user)
    assert _status(db, billing.id) == "paid"

    delete_payment(db, first.id, user)
    assert _status(db, billing.id) == "partiallyPaid"
    assert [p.amount for p in list_payments_for_billing(db, billing.id)] == [Decimal("200.00")]
    with pytest.raises(NotFoundError):
        delete_payment(db, first.id, user)


def test_delete_payment_can_skip_recompute(db):
    user, billing = _billing(db, 300)
    payment = create_payment(db, billing.id, PaymentCreate(amount=Decimal("300")), user)
    delete_payment(db, payment.id, user, recompute=False)
    assert _status(db, billing.id) == "paid"


def test_list_payments_includes_receiver(db):
    user, billing = _billing(db, 300)
    create_payment(db, billing.id, PaymentCreate(amount=Decimal("50"), payment_date=date(2030, 1, 20)), user)
    create_payment(db, billing.id, PaymentCreate(amount=Decimal("70"), payment_date=date(2030, 1, 5)), user)

    payments = list_payments_for_billing(db, billing.id)
    assert [p.amount for p in payments] == [Decimal("70.00"), Decimal("50.00")]
    assert all(p.received_by_name == "Ben" for p in payments)
