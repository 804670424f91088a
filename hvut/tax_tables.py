"""
Static HVUT tax tables for Form 2290 (tax period July 1 - June 30)
Annual rates from the IRS Form 2290 instructions, Table I (regular) and Table II (logging)
"""
from types import MappingProxyType

# Weight categories in ascending taxable gross weight order
# A = 55,000 lbs, B = 55,001-56,000 lbs, ... V = 74,001-75,000 lbs, W = over 75,000 lbs
WEIGHT_CATEGORIES = (
    "A", "B", "C", "D", "E", "F", "G", "H", "I", "J", "K", "L",
    "M", "N", "O", "P", "Q", "R", "S", "T", "U", "V", "W",
)

# Category W is reported for suspended vehicles and carries the maximum bracket
WEIGHT_RATES = MappingProxyType({
    "A": 100.00, "B": 122.00, "C": 144.00, "D": 166.00, "E": 188.00, "F": 210.00,
    "G": 232.00, "H": 254.00, "I": 276.00, "J": 298.00, "K": 320.00, "L": 342.00,
    "M": 364.00, "N": 386.00, "O": 408.00, "P": 430.00, "Q": 452.00, "R": 474.00,
    "S": 496.00, "T": 518.00, "U": 540.00, "V": 550.00, "W": 550.00
})
LOGGING_RATES = MappingProxyType({
    "A": 75.00, "B": 91.50, "C": 108.00, "D": 124.50, "E": 141.00, "F": 157.50,
    "G": 174.00, "H": 190.50, "I": 207.00, "J": 223.50, "K": 240.00, "L": 256.50,
    "M": 273.00, "N": 289.50, "O": 306.00, "P": 322.50, "Q": 339.00, "R": 355.50,
    "S": 372.00, "T": 388.50, "U": 405.00, "V": 412.50, "W": 412.50
})

SUSPENDED_CATEGORY = "W"

# Start year of the tax period used when no TAX_YEAR is configured
DEFAULT_TAX_YEAR = 2025

# Tax period order: July is month 1 of the tax year, June is month 12
TAX_PERIOD_MONTHS = (7, 8, 9, 10, 11, 12, 1, 2, 3, 4, 5, 6)

MONTH_NAMES = MappingProxyType({
    'january': 1, 'february': 2, 'march': 3, 'april': 4,
    'may': 5, 'june': 6, 'july': 7, 'august': 8,
    'september': 9, 'october': 10, 'november': 11, 'december': 12
})

# Annual mileage use limits for suspended vehicles
MILEAGE_LIMIT_STANDARD = 5000
MILEAGE_LIMIT_AGRICULTURAL = 7500

# State sales tax rates applied to the platform service fee (never to HVUT itself)
STATE_SALES_TAX_RATES = MappingProxyType({
    'AL': 0.0400, 'AK': 0.0000, 'AZ': 0.0560, 'AR': 0.0650, 'CA': 0.0725,
    'CO': 0.0290, 'CT': 0.0635, 'DE': 0.0000, 'FL': 0.0600, 'GA': 0.0400,
    'HI': 0.0400, 'ID': 0.0600, 'IL': 0.0625, 'IN': 0.0700, 'IA': 0.0600,
    'KS': 0.0650, 'KY': 0.0600, 'LA': 0.0445, 'ME': 0.0550, 'MD': 0.0600,
    'MA': 0.0625, 'MI': 0.0600, 'MN': 0.0688, 'MS': 0.0700, 'MO': 0.0423,
    'MT': 0.0000, 'NE': 0.0550, 'NV': 0.0685, 'NH': 0.0000, 'NJ': 0.0663,
    'NM': 0.0513, 'NY': 0.0400, 'NC': 0.0475, 'ND': 0.0500, 'OH': 0.0575,
    'OK': 0.0450, 'OR': 0.0000, 'PA': 0.0600, 'RI': 0.0700, 'SC': 0.0600,
    'SD': 0.0450, 'TN': 0.0700, 'TX': 0.0625, 'UT': 0.0610, 'VT': 0.0600,
    'VA': 0.0530, 'WA': 0.0650, 'WV': 0.0600, 'WI': 0.0500, 'WY': 0.0400,
    'DC': 0.0600
})


def category_rank(category):
    """Position of a category in weight order (A=0)"""
    return WEIGHT_CATEGORIES.index(category)
