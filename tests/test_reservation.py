import asyncio
from datetime import date, datetime

import pytest

from booking_engine.core.errors import ServiceNotFound, SlotConflict, ValidationError
from booking_engine.models.booking import Booking, BookingCreate, BookingStatus, PaymentMethod
from booking_engine.models.schedule_rule import RuleType
from booking_engine.services.occupancy import count_occupancy, fetch_active_bookings
from booking_engine.services.reservation_service import reserve_booking, validate_request
from booking_engine.services.slot_generator import CandidateSlot

JULY_4 = date(2024, 7, 4)
NOW = datetime(2024, 7, 1, 9, 0)
SLOTS = ["5:00 PM", "5:30 PM", "6:00 PM", "6:30 PM"]


def request(service_id=1, **overrides) -> BookingCreate:
    fields = dict(
        service_id=service_id,
        booking_date=JULY_4,
        time="5:00 PM",
        duration=60,
        user_name="Asha Rao",
        user_email="asha@example.com",
        user_phone="9876543210",
        payment_method=PaymentMethod.PAY_AT_VENUE,
        transaction_id=None,
    )
    fields.update(overrides)
    return BookingCreate(**fields)


@pytest.fixture
async def open_service(make_service, make_rule):
    service = await make_service(capacity=2)
    await make_rule(RuleType.WEEKDAY, SLOTS)
    return service


# ============================================================================
# Request validation
# ============================================================================


class TestValidateRequest:
    @pytest.mark.parametrize("phone", ["98765", "98765432101", "98765-4321", "abcdefghij", ""])
    def test_phone_must_be_ten_digits(self, phone):
        with pytest.raises(ValidationError) as exc:
            validate_request(request(user_phone=phone))
        assert exc.value.field == "user_phone"

    @pytest.mark.parametrize("email", ["asha", "asha@", "asha@example", "as ha@example.com", "@example.com"])
    def test_email_must_look_like_an_address(self, email):
        with pytest.raises(ValidationError) as exc:
            validate_request(request(user_email=email))
        assert exc.value.field == "user_email"

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError) as exc:
            validate_request(request(user_name="   "))
        assert exc.value.field == "user_name"

    def test_duration_must_be_thirty_or_sixty(self):
        with pytest.raises(ValidationError) as exc:
            validate_request(request(duration=45))
        assert exc.value.field == "duration"

    def test_three_character_reference_rejected(self):
        with pytest.raises(ValidationError) as exc:
            validate_request(request(payment_method=PaymentMethod.QR_CODE, transaction_id="123"))
        assert exc.value.field == "transaction_id"

    def test_missing_reference_rejected_for_prepaid(self):
        with pytest.raises(ValidationError) as exc:
            validate_request(request(payment_method=PaymentMethod.QR_CODE, transaction_id="   "))
        assert exc.value.field == "transaction_id"

    def test_pay_at_venue_needs_no_reference(self):
        data = validate_request(request(transaction_id=""))
        assert data.transaction_id is None

    def test_malformed_time_rejected(self):
        with pytest.raises(ValidationError) as exc:
            validate_request(request(time="17:00"))
        assert exc.value.field == "time"

    def test_fields_are_normalised(self):
        data = validate_request(request(user_email=" asha@example.com ", user_phone=" 9876543210", time="05:00 pm"))
        assert data.user_email == "asha@example.com"
        assert data.user_phone == "9876543210"
        assert data.time == "5:00 PM"


# ============================================================================
# Reservation writer
# ============================================================================


async def test_pay_at_venue_booking_starts_pending(session, open_service):
    booking = await reserve_booking(session, request(open_service.id), now=NOW)
    assert booking.id is not None
    assert booking.status is BookingStatus.PENDING
    assert booking.time == "5:00 PM"


async def test_four_character_reference_goes_to_payment_review(session, open_service):
    booking = await reserve_booking(
        session,
        request(open_service.id, payment_method=PaymentMethod.QR_CODE, transaction_id="UTR1"),
        now=NOW,
    )
    assert booking.status is BookingStatus.PAYMENT_REVIEW
    assert booking.transaction_id == "UTR1"


async def test_short_reference_writes_nothing(session, open_service):
    with pytest.raises(ValidationError) as exc:
        await reserve_booking(
            session,
            request(open_service.id, payment_method=PaymentMethod.QR_CODE, transaction_id="UTR"),
            now=NOW,
        )
    assert exc.value.field == "transaction_id"
    assert await fetch_active_bookings(session, open_service.id, JULY_4) == []


async def test_full_slot_raises_conflict(session, open_service, make_booking):
    await make_booking(open_service.id, JULY_4, "5:00 PM", phone="9000000001")
    await make_booking(open_service.id, JULY_4, "5:00 PM", phone="9000000002")

    with pytest.raises(SlotConflict):
        await reserve_booking(session, request(open_service.id), now=NOW)

    assert len(await fetch_active_bookings(session, open_service.id, JULY_4)) == 2


async def test_sixty_minutes_blocked_when_second_half_is_full(session, open_service, make_booking):
    await make_booking(open_service.id, JULY_4, "5:30 PM", duration=30, phone="9000000001")
    await make_booking(open_service.id, JULY_4, "5:30 PM", duration=30, phone="9000000002")

    with pytest.raises(SlotConflict):
        await reserve_booking(session, request(open_service.id, duration=60), now=NOW)

    booking = await reserve_booking(session, request(open_service.id, duration=30), now=NOW)
    assert booking.duration == 30


async def test_cancelled_bookings_free_the_slot(session, open_service, make_booking):
    await make_booking(open_service.id, JULY_4, "5:00 PM", status=BookingStatus.CANCELLED)
    await make_booking(open_service.id, JULY_4, "5:00 PM", status=BookingStatus.CANCELLED)

    booking = await reserve_booking(session, request(open_service.id), now=NOW)
    assert booking.status is BookingStatus.PENDING


async def test_slot_not_in_schedule_rejected(session, open_service):
    with pytest.raises(ValidationError) as exc:
        await reserve_booking(session, request(open_service.id, time="7:00 AM"), now=NOW)
    assert exc.value.field == "time"


async def test_closed_day_rejected(session, open_service, make_rule):
    await make_rule(RuleType.CUSTOM, SLOTS, rule_date=JULY_4, is_closed=True)
    with pytest.raises(ValidationError) as exc:
        await reserve_booking(session, request(open_service.id), now=NOW)
    assert exc.value.field == "booking_date"


async def test_day_without_schedule_rejected(session, open_service):
    with pytest.raises(ValidationError) as exc:
        await reserve_booking(session, request(open_service.id, booking_date=date(2024, 7, 6)), now=NOW)
    assert exc.value.field == "booking_date"


async def test_started_slot_rejected_today(session, open_service):
    with pytest.raises(ValidationError) as exc:
        await reserve_booking(session, request(open_service.id), now=datetime(2024, 7, 4, 17, 5))
    assert exc.value.field == "time"

    booking = await reserve_booking(session, request(open_service.id, time="6:00 PM"), now=datetime(2024, 7, 4, 17, 5))
    assert booking.time == "6:00 PM"


async def test_past_date_rejected(session, open_service):
    with pytest.raises(ValidationError) as exc:
        await reserve_booking(session, request(open_service.id), now=datetime(2024, 7, 10, 9, 0))
    assert exc.value.field == "booking_date"


async def test_malformed_booking_data_degrades_to_unavailable(session, open_service, make_booking):
    await make_booking(open_service.id, JULY_4, "17:00")

    with pytest.raises(ValidationError) as exc:
        await reserve_booking(session, request(open_service.id), now=NOW)
    assert exc.value.field == "booking_date"
    assert len(await fetch_active_bookings(session, open_service.id, JULY_4)) == 1


async def test_reserved_booking_carries_utc_timestamp(session, open_service):
    assert Booking.__table__.c.created_at.type.timezone is True

    booking = await reserve_booking(session, request(open_service.id), now=NOW)
    assert booking.created_at is not None


async def test_inactive_service_rejected(session, make_service, make_rule):
    service = await make_service(is_active=False)
    await make_rule(RuleType.WEEKDAY, SLOTS)
    with pytest.raises(ServiceNotFound):
        await reserve_booking(session, request(service.id), now=NOW)


async def test_sequential_reservations_never_exceed_capacity(session, open_service):
    outcomes = []
    for i in range(4):
        try:
            await reserve_booking(session, request(open_service.id, user_phone=f"90000000{i:02d}"), now=NOW)
            outcomes.append("ok")
        except SlotConflict:
            outcomes.append("conflict")
    assert outcomes == ["ok", "ok", "conflict", "conflict"]

    bookings = await fetch_active_bookings(session, open_service.id, JULY_4)
    counts = count_occupancy([CandidateSlot("5:00 PM", 1020), CandidateSlot("5:30 PM", 1050)], bookings)
    assert counts == {"5:00 PM": 2, "5:30 PM": 2}


async def test_concurrent_requests_for_last_unit(session_maker, open_service, make_booking):
    await make_booking(open_service.id, JULY_4, "5:00 PM", phone="9000000009")

    async def attempt(phone: str):
        async with session_maker() as s:
            return await reserve_booking(s, request(open_service.id, user_phone=phone), now=NOW)

    results = await asyncio.gather(attempt("9000000001"), attempt("9000000002"), return_exceptions=True)

    created = [r for r in results if isinstance(r, Booking)]
    conflicts = [r for r in results if isinstance(r, SlotConflict)]
    assert len(created) == 1
    assert len(conflicts) == 1

    async with session_maker() as s:
        bookings = await fetch_active_bookings(s, open_service.id, JULY_4)
    assert count_occupancy([CandidateSlot("5:00 PM", 1020)], bookings)["5:00 PM"] == open_service.capacity
