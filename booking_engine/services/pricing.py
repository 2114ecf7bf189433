from booking_engine.models.service import Service

# 30-minute price when a service has none of its own
THIRTY_MINUTE_PRICE_RATIO = 0.6


def price_for(service: Service, duration: int) -> int:
    if duration == 60:
        return service.price_60
    if service.price_30 is not None:
        return service.price_30
    return round(service.price_60 * THIRTY_MINUTE_PRICE_RATIO)


def previous_price_for(service: Service, duration: int) -> int | None:
    return service.previous_price_60 if duration == 60 else service.previous_price_30
