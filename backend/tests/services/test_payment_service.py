"""
支付服务与网关测试
"""
from decimal import Decimal

import pytest

from gouraan_core.engine import event_bus
from gouraan.exceptions import BusinessRuleError, NotFoundError, PaymentGatewayError
from gouraan.models.entities import (
    BookingStatus, BookingType, PaymentGatewayName, PaymentStatus,
)
from gouraan.models.events import EventType
from gouraan.models.schemas import (
    BankTransferCreate, BookingCreate, CashPaymentCreate, PaymentCreate, RefundRequest,
)
from gouraan.services.booking_service import BookingService
from gouraan.services.payment_gateways import (
    PaymentGatewayRegistry, StripeGateway, HyperpayGateway,
)
from gouraan.services.payment_service import PaymentService


@pytest.fixture
def service(db_session):
    return PaymentService(db_session)


@pytest.fixture
def booking(db_session, customer):
    return BookingService(db_session).create_booking(customer, BookingCreate(
        booking_type=BookingType.FLIGHT, total_amount=Decimal("2400.00"),
        booking_data={"route": "JED-DAC"},
    ))


class TestGateways:

    def test_registry_has_all_gateways(self):
        assert set(PaymentGatewayRegistry().names()) == {"stripe", "paypal", "sslcommerz", "hyperpay"}

    def test_charge_success(self):
        result = StripeGateway().charge(Decimal("10"), "SAR", {"payment_method_id": "pm_card_visa"})
        assert result.success
        assert result.transaction_id.startswith("pi_")

    def test_charge_declined(self):
        result = HyperpayGateway().charge(Decimal("10"), "SAR", {"checkout_id": "fail-123"})
        assert not result.success
        assert result.status == "declined"

    def test_missing_token(self):
        with pytest.raises(PaymentGatewayError) as exc:
            StripeGateway().charge(Decimal("10"), "SAR", {})
        assert exc.value.details == {"gateway": "stripe"}


class TestOnlinePayment:

    def test_successful_payment_confirms_booking(self, service, customer, booking):
        payment = service.create_payment(customer, PaymentCreate(
            booking_id=booking.id, gateway=PaymentGatewayName.STRIPE
        ))
        assert payment.amount == Decimal("2400.00")

        payment = service.process_payment(payment.id, customer, {"payment_method_id": "pm_ok"})

        assert payment.status == PaymentStatus.PAID
        assert payment.transaction_id.startswith("pi_")
        assert booking.payment_status == PaymentStatus.PAID
        assert booking.status == BookingStatus.CONFIRMED
        assert event_bus.get_history(EventType.PAYMENT_RECEIVED)[0].data["payment_id"] == payment.id

    def test_declined_payment(self, service, customer, booking):
        payment = service.create_payment(customer, PaymentCreate(
            booking_id=booking.id, gateway=PaymentGatewayName.PAYPAL
        ))
        payment = service.process_payment(payment.id, customer, {"order_id": "fail"})

        assert payment.status == PaymentStatus.FAILED
        assert payment.failure_reason == "Payment was declined by the gateway"
        assert booking.status == BookingStatus.PENDING
        assert event_bus.get_history(EventType.PAYMENT_FAILED)[0].data["payment_id"] == payment.id

    def test_gateway_error_marks_failed(self, service, customer, booking):
        payment = service.create_payment(customer, PaymentCreate(
            booking_id=booking.id, gateway=PaymentGatewayName.SSLCOMMERZ
        ))
        with pytest.raises(PaymentGatewayError) as exc:
            service.process_payment(payment.id, customer, {})
        assert exc.value.details == {"gateway": "sslcommerz"}
        assert payment.status == PaymentStatus.FAILED
        assert payment.failure_reason == "transaction_id is required"

    def test_second_payment_after_booking_confirmed(self, service, customer, booking):
        first = service.create_payment(customer, PaymentCreate(
            booking_id=booking.id, gateway=PaymentGatewayName.STRIPE
        ))
        second = service.create_payment(customer, PaymentCreate(
            booking_id=booking.id, gateway=PaymentGatewayName.PAYPAL
        ))
        service.process_payment(first.id, customer, {"payment_method_id": "pm_ok"})
        assert booking.status == BookingStatus.CONFIRMED

        with pytest.raises(BusinessRuleError):
            service.process_payment(second.id, customer, {"order_id": "ORDER-2"})
        assert second.status == PaymentStatus.PENDING
        assert len(event_bus.get_history(EventType.PAYMENT_RECEIVED)) == 1

    def test_payment_on_cancelled_booking(self, service, customer, booking):
        payment = service.create_payment(customer, PaymentCreate(
            booking_id=booking.id, gateway=PaymentGatewayName.STRIPE
        ))
        BookingService(service.db).cancel_booking(booking, "Visa refused")

        with pytest.raises(BusinessRuleError) as exc:
            service.process_payment(payment.id, customer, {"payment_method_id": "pm_ok"})
        assert exc.value.message == "预订状态为 cancelled，不能支付"
        assert payment.status == PaymentStatus.PENDING
        assert booking.payment_status == PaymentStatus.PENDING

    def test_bank_transfer_on_cancelled_booking(self, service, customer, admin, booking):
        payment = service.create_bank_transfer(customer, BankTransferCreate(
            booking_id=booking.id, reference_number="TRX-7790", bank_name="SNB"
        ))
        BookingService(service.db).cancel_booking(booking)

        with pytest.raises(BusinessRuleError):
            service.verify_bank_transfer(payment.id, True, admin)
        assert booking.status == BookingStatus.CANCELLED

    def test_process_twice(self, service, customer, booking):
        payment = service.create_payment(customer, PaymentCreate(
            booking_id=booking.id, gateway=PaymentGatewayName.STRIPE
        ))
        service.process_payment(payment.id, customer, {"payment_method_id": "pm_ok"})
        with pytest.raises(BusinessRuleError):
            service.process_payment(payment.id, customer, {"payment_method_id": "pm_ok"})

    def test_other_users_booking(self, service, other_customer, booking):
        with pytest.raises(NotFoundError):
            service.create_payment(other_customer, PaymentCreate(
                booking_id=booking.id, gateway=PaymentGatewayName.STRIPE
            ))

    def test_offline_gateway_rejected(self, service, customer, booking):
        with pytest.raises(BusinessRuleError):
            service.create_payment(customer, PaymentCreate(
                booking_id=booking.id, gateway=PaymentGatewayName.CASH
            ))


class TestRefund:

    @pytest.fixture
    def paid(self, service, customer, booking):
        payment = service.create_payment(customer, PaymentCreate(
            booking_id=booking.id, gateway=PaymentGatewayName.STRIPE
        ))
        return service.process_payment(payment.id, customer, {"payment_method_id": "pm_ok"})

    def test_full_refund(self, service, paid, booking):
        payment = service.refund_payment(paid.id, RefundRequest(reason="Flight cancelled"))

        assert payment.status == PaymentStatus.REFUNDED
        assert payment.refund_amount == Decimal("2400.00")
        assert booking.status == BookingStatus.REFUNDED
        assert booking.payment_status == PaymentStatus.REFUNDED
        assert payment.gateway_response["refund"]["status"] == "refunded"

    def test_refund_more_than_paid(self, service, paid):
        with pytest.raises(BusinessRuleError):
            service.refund_payment(paid.id, RefundRequest(amount=Decimal("5000")))

    def test_refund_unpaid(self, service, customer, booking):
        payment = service.create_payment(customer, PaymentCreate(
            booking_id=booking.id, gateway=PaymentGatewayName.STRIPE
        ))
        with pytest.raises(BusinessRuleError):
            service.refund_payment(payment.id, RefundRequest())


class TestOfflinePayment:

    def test_bank_transfer_approved(self, service, customer, admin, booking):
        payment = service.create_bank_transfer(customer, BankTransferCreate(
            booking_id=booking.id, reference_number="TRX-7781", bank_name="Al Rajhi"
        ))
        assert payment.status == PaymentStatus.PENDING
        assert payment.bank_details["bank_name"] == "Al Rajhi"

        payment = service.verify_bank_transfer(payment.id, True, admin, "Matched statement")

        assert payment.status == PaymentStatus.PAID
        assert payment.verified_by_id == admin.id
        assert booking.status == BookingStatus.CONFIRMED

    def test_bank_transfer_rejected(self, service, customer, admin, booking):
        payment = service.create_bank_transfer(customer, BankTransferCreate(
            booking_id=booking.id, reference_number="TRX-7782", bank_name="SNB"
        ))
        payment = service.verify_bank_transfer(payment.id, False, admin, "No matching transfer")

        assert payment.status == PaymentStatus.FAILED
        assert payment.failure_reason == "No matching transfer"
        assert booking.status == BookingStatus.PENDING

    def test_cash_payment(self, service, finance_user, booking):
        payment = service.record_cash_payment(finance_user, CashPaymentCreate(booking_id=booking.id))

        assert payment.gateway == PaymentGatewayName.CASH
        assert payment.status == PaymentStatus.PAID
        assert payment.reference_number.startswith("CASH-")
        assert payment.bank_details == {"received_by": finance_user.email}
        assert booking.status == BookingStatus.CONFIRMED

    def test_verify_non_transfer(self, service, finance_user, admin, booking):
        payment = service.record_cash_payment(finance_user, CashPaymentCreate(booking_id=booking.id))
        with pytest.raises(BusinessRuleError):
            service.verify_bank_transfer(payment.id, True, admin)
