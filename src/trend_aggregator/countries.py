"""Country catalog shared by the adapters and the country list parser."""

from typing import List, Optional

COUNTRIES = [
    ("Global", "GLOBAL"),
    ("United States", "US"),
    ("United Kingdom", "GB"),
    ("Canada", "CA"),
    ("Australia", "AU"),
    ("Germany", "DE"),
    ("France", "FR"),
    ("Italy", "IT"),
    ("Spain", "ES"),
    ("Netherlands", "NL"),
    ("Belgium", "BE"),
    ("Switzerland", "CH"),
    ("Austria", "AT"),
    ("Sweden", "SE"),
    ("Norway", "NO"),
    ("Denmark", "DK"),
    ("Finland", "FI"),
    ("Poland", "PL"),
    ("Portugal", "PT"),
    ("Greece", "GR"),
    ("Ireland", "IE"),
    ("India", "IN"),
    ("Japan", "JP"),
    ("South Korea", "KR"),
    ("China", "CN"),
    ("Brazil", "BR"),
    ("Mexico", "MX"),
    ("Argentina", "AR"),
    ("Chile", "CL"),
    ("South Africa", "ZA"),
    ("New Zealand", "NZ"),
    ("Singapore", "SG"),
    ("Malaysia", "MY"),
    ("Thailand", "TH"),
    ("Philippines", "PH"),
    ("Indonesia", "ID"),
    ("Turkey", "TR"),
    ("Saudi Arabia", "SA"),
    ("United Arab Emirates", "AE"),
    ("Egypt", "EG"),
]


def get_country_name(code: str) -> Optional[str]:
    """Look up the display name for a country code."""
    code = code.strip().upper()
    for name, country_code in COUNTRIES:
        if country_code == code:
            return name
    return None


def get_country_codes() -> List[str]:
    return [code for _, code in COUNTRIES]
