"""
State reference data and normalization helpers.

Sources disagree on how they spell a state: Congress.gov returns full names,
the Census Geocoder returns FIPS codes, the clerk archives use postal codes.
Everything stored in the database uses the 2-letter postal code.
"""

from typing import Optional

STATE_NAME_TO_CODE = {
    'Alabama': 'AL', 'Alaska': 'AK', 'Arizona': 'AZ', 'Arkansas': 'AR',
    'California': 'CA', 'Colorado': 'CO', 'Connecticut': 'CT', 'Delaware': 'DE',
    'Florida': 'FL', 'Georgia': 'GA', 'Hawaii': 'HI', 'Idaho': 'ID',
    'Illinois': 'IL', 'Indiana': 'IN', 'Iowa': 'IA', 'Kansas': 'KS',
    'Kentucky': 'KY', 'Louisiana': 'LA', 'Maine': 'ME', 'Maryland': 'MD',
    'Massachusetts': 'MA', 'Michigan': 'MI', 'Minnesota': 'MN', 'Mississippi': 'MS',
    'Missouri': 'MO', 'Montana': 'MT', 'Nebraska': 'NE', 'Nevada': 'NV',
    'New Hampshire': 'NH', 'New Jersey': 'NJ', 'New Mexico': 'NM', 'New York': 'NY',
    'North Carolina': 'NC', 'North Dakota': 'ND', 'Ohio': 'OH', 'Oklahoma': 'OK',
    'Oregon': 'OR', 'Pennsylvania': 'PA', 'Rhode Island': 'RI', 'South Carolina': 'SC',
    'South Dakota': 'SD', 'Tennessee': 'TN', 'Texas': 'TX', 'Utah': 'UT',
    'Vermont': 'VT', 'Virginia': 'VA', 'Washington': 'WA', 'West Virginia': 'WV',
    'Wisconsin': 'WI', 'Wyoming': 'WY',
    # Territories with delegates
    'District of Columbia': 'DC', 'Puerto Rico': 'PR', 'Guam': 'GU',
    'Virgin Islands': 'VI', 'American Samoa': 'AS', 'Northern Mariana Islands': 'MP',
}

STATE_CODES = frozenset(STATE_NAME_TO_CODE.values())

FIPS_TO_STATE = {
    '01': 'AL', '02': 'AK', '04': 'AZ', '05': 'AR', '06': 'CA',
    '08': 'CO', '09': 'CT', '10': 'DE', '11': 'DC', '12': 'FL',
    '13': 'GA', '15': 'HI', '16': 'ID', '17': 'IL', '18': 'IN',
    '19': 'IA', '20': 'KS', '21': 'KY', '22': 'LA', '23': 'ME',
    '24': 'MD', '25': 'MA', '26': 'MI', '27': 'MN', '28': 'MS',
    '29': 'MO', '30': 'MT', '31': 'NE', '32': 'NV', '33': 'NH',
    '34': 'NJ', '35': 'NM', '36': 'NY', '37': 'NC', '38': 'ND',
    '39': 'OH', '40': 'OK', '41': 'OR', '42': 'PA', '44': 'RI',
    '45': 'SC', '46': 'SD', '47': 'TN', '48': 'TX', '49': 'UT',
    '50': 'VT', '51': 'VA', '53': 'WA', '54': 'WV', '55': 'WI',
    '56': 'WY', '60': 'AS', '66': 'GU', '69': 'MP', '72': 'PR',
    '78': 'VI',
}

AT_LARGE = 'AL'
AT_LARGE_CODES = ('', '0', '00', '98', 'AL', 'AT LARGE', 'AT-LARGE')


def normalize_state_code(state: Optional[str]) -> Optional[str]:
    """
    Map a postal code, full state name or FIPS code to a postal code.

    Returns None when the value is not a state we know about.
    """
    if not state:
        return None
    value = str(state).strip()
    if not value:
        return None

    upper = value.upper()
    if upper in STATE_CODES:
        return upper

    if value.isdigit():
        return FIPS_TO_STATE.get(value.zfill(2))

    for name, code in STATE_NAME_TO_CODE.items():
        if name.lower() == value.lower():
            return code
    return None


def normalize_district(district) -> str:
    """
    Normalize a congressional district designation.

    '0', '00', '98' (Census code for at-large delegates) and blank all map
    to 'AL'. Numeric districts lose leading zeros so '07' and '7' compare equal.
    """
    if district is None:
        return AT_LARGE
    value = str(district).strip().upper()
    if value in AT_LARGE_CODES:
        return AT_LARGE
    if value.isdigit():
        return str(int(value))
    return value
