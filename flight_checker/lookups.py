"""Display names for IATA airline and city codes."""

from __future__ import annotations

AIRLINE_NAMES = {
    "UT": "Utair",
    "SU": "Aeroflot",
    "S7": "S7 Airlines",
    "U6": "Ural Airlines",
    "WZ": "Red Wings",
    "N4": "Nordwind",
    "DP": "Pobeda",
    "R3": "Yakutia",
    "5N": "Smartavia",
    "EO": "Pegas Fly",
    "RT": "UVT Aero",
    "A4": "Azimuth",
    "IO": "IrAero",
    "YC": "Yamal",
    "7R": "RusLine",
    "KV": "KrasAvia",
}

CITY_NAMES = {
    "MOW": "Moscow",
    "LED": "Saint Petersburg",
    "UFA": "Ufa",
    "USK": "Usinsk",
    "KZN": "Kazan",
    "AER": "Sochi",
    "SVX": "Yekaterinburg",
    "OVB": "Novosibirsk",
    "VVO": "Vladivostok",
    "KGD": "Kaliningrad",
    "ROV": "Rostov-on-Don",
    "KRR": "Krasnodar",
    "SIP": "Simferopol",
    "GOJ": "Nizhny Novgorod",
    "SGC": "Surgut",
    "MRV": "Mineralnye Vody",
    "CEK": "Chelyabinsk",
    "KUF": "Samara",
    "BAX": "Barnaul",
    "OMS": "Omsk",
    "TJM": "Tyumen",
    "IKT": "Irkutsk",
    "MMK": "Murmansk",
    "KJA": "Krasnoyarsk",
    "VOG": "Volgograd",
}


def airline_name(code: str) -> str:
    return AIRLINE_NAMES.get(code, code)


def city_name(code: str) -> str:
    return CITY_NAMES.get(code, code)


__all__ = ["AIRLINE_NAMES", "CITY_NAMES", "airline_name", "city_name"]
