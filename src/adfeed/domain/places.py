"""Catalog of supported states and cities with their coordinates."""

from __future__ import annotations

from .listing import Location

# state -> {city: (lat, lng)}
PLACES: dict[str, dict[str, tuple[float, float]]] = {
    "Lagos": {
        "Ikeja": (6.5967, 3.3421),
        "Lagos Island": (6.4550, 3.3942),
        "Ikorodu": (6.6194, 3.5105),
        "Lekki": (6.4446, 3.5173),
        "Surulere": (6.5059, 3.3489),
    },
    "Abuja (FCT)": {
        "Garki": (9.0343, 7.4878),
        "Wuse": (9.0636, 7.4727),
        "Maitama": (9.0882, 7.4984),
        "Asokoro": (9.0436, 7.5197),
        "Gwarinpa": (9.1084, 7.4003),
    },
    "Rivers": {
        "Port Harcourt": (4.8156, 7.0498),
        "Obio-Akpor": (4.8482, 6.9930),
        "Bonny": (4.4500, 7.1667),
    },
    "Oyo": {
        "Ibadan": (7.3775, 3.9470),
        "Ogbomosho": (8.1333, 4.2500),
        "Oyo Town": (7.8500, 3.9333),
    },
    "Kano": {
        "Kano City": (12.0022, 8.5920),
        "Wudil": (11.8106, 8.8471),
    },
    "Enugu": {
        "Enugu City": (6.4584, 7.5464),
        "Nsukka": (6.8561, 7.3917),
    },
    "Delta": {
        "Asaba": (6.1985, 6.7297),
        "Warri": (5.5167, 5.7500),
        "Effurun": (5.5534, 5.7797),
    },
    "Kaduna": {
        "Kaduna City": (10.5105, 7.4165),
        "Zaria": (11.0667, 7.7000),
    },
    "Anambra": {
        "Awka": (6.2106, 7.0731),
        "Onitsha": (6.1420, 6.7881),
        "Nnewi": (6.0167, 6.9167),
    },
    "Edo": {
        "Benin City": (6.3350, 5.6037),
        "Auchi": (7.0667, 6.2667),
    },
    "Ogun": {
        "Abeokuta": (7.1475, 3.3619),
        "Ota": (6.6853, 3.2307),
        "Ijebu Ode": (6.8194, 3.9173),
    },
    "Akwa Ibom": {
        "Uyo": (5.0333, 7.9266),
        "Eket": (4.6433, 7.9233),
    },
    "Plateau": {"Jos": (9.8965, 8.8583)},
    "Kwara": {"Ilorin": (8.4799, 4.5418)},
    "Imo": {"Owerri": (5.4850, 7.0350)},
    "Abia": {
        "Umuahia": (5.5245, 7.4939),
        "Aba": (5.1066, 7.3667),
    },
    "Adamawa": {"Yola": (9.2035, 12.4850)},
    "Bauchi": {"Bauchi City": (10.3103, 9.8439)},
}


def list_states() -> list[str]:
    return list(PLACES)


def list_cities(state: str) -> list[str]:
    return list(PLACES.get(state, {}))


def find_place(state: str, city: str) -> Location | None:
    """Return the catalog location for ``(state, city)`` or None if unknown."""
    coords = PLACES.get(state, {}).get(city)
    if coords is None:
        return None
    lat, lng = coords
    return Location(lat=lat, lng=lng, city=city, state=state)
