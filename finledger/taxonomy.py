"""COICOP-aligned category codes and their built-in keyword sets."""

OTHER = "OTHER"

# Evaluated top to bottom; the first category with a keyword contained in the
# upper-cased description wins. Order follows the COICOP divisions.
DEFAULT_CATEGORY_KEYWORDS: dict[str, list[str]] = {
    # 01 Food and non-alcoholic beverages
    "FOOD_GROCERIES": [
        "WOOLWORTHS", "COLES", "IGA ", "ALDI", "SUPERMARKET", "FOODLAND", "SPAR",
        "FRESH TONE", "ASIAN GROCER", "BUTCHER", "BAKERY", "FRUIT", "VEGETABLE", "GOLDLAND",
    ],
    "FOOD_BEVERAGES": ["JUICE", "SOFT DRINK", "BEVERAGE", "COFFEE BEANS"],
    "FOOD_SPECIALTY": ["DELI", "SEAFOOD", "ORGANIC", "HEALTH FOOD", "GOURMET"],
    # 02 Alcoholic beverages and tobacco
    "ALCOHOL_BEVERAGES": [
        "BWS", "DAN MURPHY", "LIQUOR", "WINE", "BEER", "SPIRITS", "ALCOHOL",
        "BOTTLE SHOP", "CELLARBRATIONS", "FIRST CHOICE",
    ],
    "TOBACCO_PRODUCTS": ["TOBACCO", "CIGARETTE", "CIGAR", "SMOKING"],
    # 03 Clothing and footwear
    "CLOTHING_APPAREL": [
        "UNIQLO", "H&M", "ZARA", "COTTON ON", "TARGET", "KMART", "BIG W",
        "MYER", "DAVID JONES", "KATHMANDU", "BONDS", "FASHION", "CLOTHING",
    ],
    "CLOTHING_FOOTWEAR": ["SHOES", "BOOTS", "SANDALS", "SNEAKERS", "FOOTWEAR", "ATHLETE FOOT"],
    # 04 Housing, water, electricity, gas
    "HOUSING_RENT": ["RENT", "RENTAL", "REAL ESTATE", "REALTY"],
    "HOUSING_MORTGAGE": ["MORTGAGE", "HOME LOAN"],
    "UTILITIES_ELECTRICITY": [
        "ELECTRICITY", "ELECTRIC", "ORIGIN", "AGL", "RED ENERGY",
        "SIMPLY ENERGY", "POWERSHOP", "MOMENTUM", "ENERGY AUSTRALIA",
    ],
    "UTILITIES_GAS": ["NATURAL GAS", "LPG", "GAS"],
    "UTILITIES_WATER": ["YARRA VALLEY", "SYDNEY WATER", "SA WATER", "UNITY WATER", "WATER"],
    "HOUSING_MAINTENANCE": ["PLUMBER", "ELECTRICIAN", "PAINTER", "CLEANER", "HANDYMAN", "MAINTENANCE"],
    # 05 Furnishings and household equipment
    "HOUSEHOLD_FURNITURE": ["IKEA", "FANTASTIC", "FURNITURE", "SOFA"],
    "HOUSEHOLD_APPLIANCES": [
        "JB HI-FI", "HARVEY NORMAN", "APPLIANCE", "WASHING MACHINE", "FRIDGE",
        "DISHWASHER", "MICROWAVE", "VACUUM",
    ],
    "HOUSEHOLD_SUPPLIES": ["BUNNINGS", "SPOTLIGHT", "TEMPLE", "WEBER", "HARDWARE", "GARDEN", "DETERGENT"],
    # 06 Health
    "HEALTH_DENTAL": ["DENTIST", "DENTAL", "ORTHODONTIST"],
    "HEALTH_MEDICAL": [
        "DOCTOR", "HOSPITAL", "MEDICAL", "CLINIC", "PHYSIO",
        "CHIRO", "OSTEO", "SPECIALIST", "PATHOLOGY",
    ],
    "HEALTH_PHARMACY": ["PHARMACY", "CHEMIST", "PRICELINE", "TERRY WHITE", "AMCAL", "PRESCRIPTION"],
    "HEALTH_INSURANCE": ["MEDIBANK", "BUPA", "HCF", "NIB", "HEALTH INSURANCE"],
    # 07 Transport
    "TRANSPORT_FUEL": [
        "PETROL", "FUEL", "BP ", "SHELL", "CALTEX", "MOBIL", "7-ELEVEN", "UNITED", "DIESEL", "SERVO",
    ],
    "TRANSPORT_PUBLIC": ["METRO TRAIN", "OPAL", "MYKI", "TRANSLINK", "METROCARD", "TRAM", "FERRY"],
    "TRANSPORT_RIDESHARE": ["UBER", "TAXI", "LYFT", "DIDI", "RIDESHARE"],
    "TRANSPORT_PARKING": ["PARKING", "CAR PARK", "METER"],
    "TRANSPORT_MAINTENANCE": ["MECHANIC", "TYRES", "AUTO REPAIR", "CAR WASH"],
    "TRANSPORT_REGISTRATION": ["REGO", "REGISTRATION", "ROADSIDE", "TOLLS", "LINKT"],
    "TRANSPORT_VEHICLE": ["CAR DEALER", "VEHICLE", "MOTORBIKE"],
    # 08 Information and communication
    "COMMUNICATION_MOBILE": ["TELSTRA", "OPTUS", "VODAFONE", "MOBILE", "PHONE BILL", "PREPAID"],
    "COMMUNICATION_INTERNET": ["TPG", "IINET", "AUSSIE BROADBAND", "TANGERINE", "INTERNET", "BROADBAND", "NBN"],
    "COMMUNICATION_POSTAL": ["AUSTRALIA POST", "POSTAL", "POSTAGE", "COURIER"],
    # 09 Recreation, sport and culture
    "RECREATION_STREAMING": [
        "NETFLIX", "SPOTIFY", "DISNEY", "AMAZON PRIME", "STAN.COM", "BINGE",
        "YOUTUBE", "APPLE MUSIC", "FOXTEL",
    ],
    "RECREATION_ENTERTAINMENT": ["CINEMA", "MOVIE", "THEATRE", "CONCERT", "TICKETEK", "TICKETMASTER"],
    "RECREATION_SPORTS": ["GYM", "FITNESS", "YOGA", "PILATES", "PERSONAL TRAINER", "JETTS", "F45"],
    "RECREATION_GAMING": ["STEAM", "GAMING", "PLAYSTATION", "XBOX", "NINTENDO"],
    "RECREATION_HOBBIES": ["BOOKS", "MAGAZINES", "HOBBIES", "CRAFT", "ART SUPPLIES"],
    "RECREATION_TRAVEL": ["AIRBNB", "BOOKING.COM", "FLIGHT", "JETSTAR", "QANTAS", "VIRGIN", "TRAVEL"],
    # 10 Education
    "EDUCATION_TUITION": ["UNIVERSITY", "TAFE", "SCHOOL", "TUITION"],
    "EDUCATION_SUPPLIES": ["STATIONERY", "TEXTBOOK", "OFFICEWORKS"],
    "EDUCATION_COURSES": ["COURSE", "TRAINING", "WORKSHOP", "SEMINAR", "UDEMY", "COURSERA"],
    # 11 Restaurants and accommodation
    "DINING_TAKEAWAY": [
        "MCDONALD", "KFC", "SUBWAY", "HUNGRY", "DOMINO", "PIZZA",
        "BURGER", "TAKEAWAY", "FAST FOOD", "MENULOG", "DOORDASH",
    ],
    "DINING_CAFES": ["CAFE", "COFFEE", "STARBUCKS", "GLORIA JEAN"],
    "DINING_PUBS": ["PUB", "TAVERN", "HOTEL BAR", "BREWERY"],
    "DINING_ETHNIC": ["SUSHI", "THAI", "CHINESE", "INDIAN", "JAPANESE", "VIETNAMESE", "MEXICAN", "ITALIAN"],
    "DINING_RESTAURANTS": ["RESTAURANT", "BISTRO", "FINE DINING", "STEAKHOUSE", "GRILL"],
    "ACCOMMODATION": ["HOTEL", "MOTEL", "RESORT", "ACCOMMODATION"],
    # 12 Miscellaneous goods and services
    "PERSONAL_CARE": ["HAIRDRESSER", "BARBER", "BEAUTY", "MASSAGE", "NAIL", "COSMETIC", "SKINCARE"],
    "FINANCIAL_SERVICES": ["BANK FEE", "ATM FEE", "OVERDRAFT", "INTEREST", "LATE PAYMENT FEE", "ANNUAL FEE"],
    "INSURANCE_GENERAL": ["INSURANCE", "NRMA", "RACV", "AAMI", "BUDGET DIRECT", "ALLIANZ", "QBE", "SUNCORP"],
    "PROFESSIONAL_SERVICES": ["LAWYER", "ACCOUNTANT", "LEGAL", "SOLICITOR", "NOTARY"],
    "CHARITABLE_DONATIONS": ["DONATION", "CHARITY", "FUNDRAISING"],
    "CHILDCARE": ["CHILDCARE", "DAYCARE", "KINDERGARTEN", "BABYSITTING", "NANNY"],
    "PETS": ["VET", "PETBARN", "PET STOCK", "PETSTOCK"],
    "GOVERNMENT": ["ATO", "CENTRELINK", "MEDICARE", "VICROADS", "SERVICE NSW", "COUNCIL"],
    "INVESTMENTS": ["VANGUARD", "BLACKROCK", "COMMSEC", "NABTRADE", "STAKE", "INVESTMENT"],
    "SHOPPING_ONLINE": ["AMAZON", "EBAY", "PAYPAL", "AFTERPAY", "ZIP PAY", "ONLINE"],
    "TRANSFERS": ["TRANSFER", "BPAY", "DIRECT DEBIT"],
    "CASH_WITHDRAWAL": ["CASH", "WITHDRAWAL", "ATM"],
}

# Checked before DEFAULT_CATEGORY_KEYWORDS: merchants whose names contain a
# keyword of an earlier category ("UBER EATS" contains "UBER")
PRIORITY_KEYWORDS: dict[str, list[str]] = {
    "DINING_TAKEAWAY": ["UBER EATS", "UBEREATS"],
}

CATEGORY_CODES: tuple[str, ...] = tuple(DEFAULT_CATEGORY_KEYWORDS) + (OTHER,)

KEYWORD_SCAN_ORDER: tuple[tuple[str, tuple[str, ...]], ...] = tuple(
    (code, tuple(words)) for code, words in (*PRIORITY_KEYWORDS.items(), *DEFAULT_CATEGORY_KEYWORDS.items())
)

# COICOP division of each code
PARENT_GROUPS: dict[str, list[str]] = {
    "FOOD": ["FOOD_GROCERIES", "FOOD_BEVERAGES", "FOOD_SPECIALTY"],
    "ALCOHOLIC_TOBACCO": ["ALCOHOL_BEVERAGES", "TOBACCO_PRODUCTS"],
    "CLOTHING_FOOTWEAR": ["CLOTHING_APPAREL", "CLOTHING_FOOTWEAR"],
    "HOUSING": [
        "HOUSING_RENT", "HOUSING_MORTGAGE", "UTILITIES_ELECTRICITY",
        "UTILITIES_GAS", "UTILITIES_WATER", "HOUSING_MAINTENANCE",
    ],
    "HOUSEHOLD_EQUIPMENT": ["HOUSEHOLD_FURNITURE", "HOUSEHOLD_APPLIANCES", "HOUSEHOLD_SUPPLIES"],
    "HEALTH": ["HEALTH_MEDICAL", "HEALTH_PHARMACY", "HEALTH_DENTAL", "HEALTH_INSURANCE"],
    "TRANSPORT": [
        "TRANSPORT_VEHICLE", "TRANSPORT_FUEL", "TRANSPORT_PUBLIC", "TRANSPORT_RIDESHARE",
        "TRANSPORT_PARKING", "TRANSPORT_MAINTENANCE", "TRANSPORT_REGISTRATION",
    ],
    "COMMUNICATION": ["COMMUNICATION_MOBILE", "COMMUNICATION_INTERNET", "COMMUNICATION_POSTAL"],
    "RECREATION": [
        "RECREATION_ENTERTAINMENT", "RECREATION_SPORTS", "RECREATION_HOBBIES",
        "RECREATION_GAMING", "RECREATION_STREAMING", "RECREATION_TRAVEL",
    ],
    "EDUCATION": ["EDUCATION_TUITION", "EDUCATION_SUPPLIES", "EDUCATION_COURSES", "CHILDCARE"],
    "RESTAURANTS_HOTELS": [
        "DINING_RESTAURANTS", "DINING_TAKEAWAY", "DINING_CAFES", "DINING_PUBS", "DINING_ETHNIC", "ACCOMMODATION",
    ],
    "MISCELLANEOUS": [
        "PERSONAL_CARE", "FINANCIAL_SERVICES", "INSURANCE_GENERAL", "PROFESSIONAL_SERVICES",
        "CHARITABLE_DONATIONS", "PETS", OTHER,
    ],
}

CATEGORY_PARENTS: dict[str, str] = {code: parent for parent, codes in PARENT_GROUPS.items() for code in codes}

UNGROUPED = "OTHERS"

# Seeded into an empty rule store by `seed_default_rules`
DEFAULT_RULES: list[tuple[str, str, int]] = [
    ("WOOLWORTHS", "FOOD_GROCERIES", 10),
    ("COLES", "FOOD_GROCERIES", 10),
    ("ALDI", "FOOD_GROCERIES", 10),
    ("MCDONALD", "DINING_TAKEAWAY", 10),
    ("KFC", "DINING_TAKEAWAY", 10),
    ("UBER EATS", "DINING_TAKEAWAY", 10),
    ("DOMINO", "DINING_TAKEAWAY", 10),
    ("NETFLIX", "RECREATION_STREAMING", 10),
    ("SPOTIFY", "RECREATION_STREAMING", 10),
    ("SHELL", "TRANSPORT_FUEL", 10),
    ("UBER", "TRANSPORT_RIDESHARE", 9),
    ("BUNNINGS", "HOUSEHOLD_SUPPLIES", 10),
    ("JB HI-FI", "HOUSEHOLD_APPLIANCES", 10),
    ("ORIGIN ENERGY", "UTILITIES_ELECTRICITY", 10),
    ("AGL", "UTILITIES_ELECTRICITY", 10),
    ("TELSTRA", "COMMUNICATION_MOBILE", 10),
    ("OPTUS", "COMMUNICATION_MOBILE", 10),
]

def is_known_category(code: str) -> bool:
    """Check a code against the built-in taxonomy."""
    return code in CATEGORY_CODES

def parent_category(code: str) -> str:
    """Return the COICOP division a code rolls up into."""
    return CATEGORY_PARENTS.get(code, UNGROUPED)

def group_by_parent(breakdown: dict) -> dict:
    """Roll a {code: amount} breakdown up to {division: amount}, sorted by division."""
    totals: dict = {}
    for code, amount in breakdown.items():
        parent = parent_category(code)
        totals[parent] = totals.get(parent, 0) + amount
    return dict(sorted(totals.items()))
