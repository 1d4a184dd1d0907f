"""
Static waste classification guide.

Classification is a keyword lookup over a free-text description; there is no
model behind it. Each entry maps to a stored waste type, category and bin.
"""

from typing import Any, Dict, List

WASTE_GUIDE: Dict[str, Dict[str, Any]] = {
    "biodegradable": {
        "category": "Biodegradable",
        "waste_type": "Biodegradable",
        "bin_color": "Green",
        "items": [
            "Food waste",
            "Vegetable peels",
            "Fruit scraps",
            "Tea bags",
            "Coffee grounds",
            "Eggshells",
            "Garden waste",
            "Leaves",
            "Flowers",
            "Paper (uncoated)",
            "Cardboard",
            "Wooden items",
        ],
        "disposal_instructions": "Dispose in GREEN bin. Can be composted to create nutrient-rich soil. Keep dry and avoid mixing with non-biodegradable waste.",
        "tips": [
            "Compost at home if possible",
            "Remove any plastic packaging",
            "Keep separate from other waste",
            "Use for garden composting",
        ],
        "decomposition_time": "2 weeks to 6 months",
    },
    "plastic": {
        "category": "Recyclable",
        "waste_type": "Recyclable - Plastic",
        "bin_color": "Blue",
        "items": [
            "Plastic bottles",
            "Plastic containers",
            "Plastic bags",
            "PET bottles",
            "HDPE containers",
            "Plastic packaging",
            "Plastic toys",
            "Plastic furniture",
        ],
        "disposal_instructions": "Dispose in BLUE bin. Clean and dry before recycling. Remove caps and labels if possible. Flatten bottles to save space.",
        "tips": [
            "Rinse containers before disposal",
            "Check for recycling symbol (1-7)",
            "Flatten to save space",
            "Avoid mixing with food waste",
        ],
        "recycling_benefit": "1 ton plastic recycled = 2 tons of CO2 emissions saved",
    },
    "paper": {
        "category": "Recyclable",
        "waste_type": "Recyclable - Paper",
        "bin_color": "Blue",
        "items": [
            "Newspapers",
            "Magazines",
            "Office paper",
            "Cardboard boxes",
            "Paper bags",
            "Books",
            "Notebooks",
            "Cartons",
        ],
        "disposal_instructions": "Dispose in BLUE bin. Keep paper dry and clean. Remove any plastic coating, staples, or tape. Flatten boxes.",
        "tips": [
            "Keep dry to prevent contamination",
            "Remove plastic windows from envelopes",
            "Flatten cardboard boxes",
            "Shred sensitive documents",
        ],
        "recycling_benefit": "1 ton paper recycled = 17 trees saved",
    },
    "glass": {
        "category": "Recyclable",
        "waste_type": "Recyclable - Glass",
        "bin_color": "Blue",
        "items": [
            "Glass bottles",
            "Glass jars",
            "Glass containers",
            "Drinking glasses",
            "Glass tableware",
        ],
        "disposal_instructions": "Dispose in BLUE bin. Rinse containers. Remove metal caps and lids. Be careful with broken glass - wrap in newspaper.",
        "tips": [
            "Rinse before recycling",
            "Remove metal lids",
            "Separate by color if possible",
            "Wrap broken glass safely",
        ],
        "recycling_benefit": "Glass can be recycled infinitely without quality loss",
    },
    "metal": {
        "category": "Recyclable",
        "waste_type": "Recyclable - Metal",
        "bin_color": "Blue",
        "items": [
            "Aluminum cans",
            "Steel cans",
            "Tin containers",
            "Aluminum foil",
            "Metal bottle caps",
            "Wire hangers",
            "Metal utensils",
            "Small metal items",
        ],
        "disposal_instructions": "Dispose in BLUE bin. Rinse cans and containers. Crush cans to save space. Remove any plastic labels.",
        "tips": [
            "Rinse food cans",
            "Crush cans to save space",
            "Remove paper labels",
            "Separate ferrous and non-ferrous if possible",
        ],
        "recycling_benefit": "Recycling 1 aluminum can saves enough energy to run a TV for 3 hours",
    },
    "ewaste": {
        "category": "E-waste",
        "waste_type": "E-waste",
        "bin_color": "Yellow",
        "items": [
            "Mobile phones",
            "Computers",
            "Laptops",
            "Tablets",
            "Batteries",
            "Chargers",
            "LED bulbs",
            "CFL bulbs",
            "Electronic toys",
            "Circuit boards",
            "Cables",
        ],
        "disposal_instructions": "Dispose in YELLOW bin or take to authorized e-waste collection center. DO NOT throw in regular waste. Contains harmful materials and valuable recoverable materials.",
        "tips": [
            "Remove batteries before disposal",
            "Delete personal data from devices",
            "Take to certified e-waste recycler",
            "Check for buy-back programs",
        ],
        "warning": "Contains toxic materials like lead, mercury, and cadmium. Improper disposal harms environment.",
        "recycling_benefit": "E-waste contains gold, silver, copper - valuable metals that can be recovered",
    },
    "hazardous": {
        "category": "Hazardous",
        "waste_type": "Hazardous",
        "bin_color": "Red",
        "items": [
            "Batteries",
            "Paint",
            "Pesticides",
            "Chemicals",
            "Motor oil",
            "Cleaning products",
            "Medical waste",
            "Sharp objects",
            "Expired medicines",
        ],
        "disposal_instructions": "Dispose in RED bin or take to hazardous waste collection facility. NEVER mix with regular waste. Handle with care.",
        "tips": [
            "Store separately in sealed containers",
            "Take to hazardous waste facility",
            "Return medicines to pharmacy",
            "Never pour down drains",
        ],
        "warning": "DANGEROUS: Can cause serious harm to health and environment. Requires special handling.",
        "special_instructions": "Contact local municipality for hazardous waste collection schedule",
    },
}

# First match wins
_KEYWORD_RULES = [
    (("biodegradable", "food", "organic"), "biodegradable"),
    (("plastic",), "plastic"),
    (("paper", "cardboard"), "paper"),
    (("glass",), "glass"),
    (("metal", "aluminum", "tin"), "metal"),
    (("e-waste", "electronic", "battery"), "ewaste"),
    (("hazardous", "chemical", "medical"), "hazardous"),
]


def get_waste_info(description: str) -> Dict[str, Any]:
    """Guide entry for a free-text waste description, biodegradable when nothing matches."""
    normalized = description.lower()
    for keywords, guide_key in _KEYWORD_RULES:
        if any(keyword in normalized for keyword in keywords):
            return WASTE_GUIDE[guide_key]
    return WASTE_GUIDE["biodegradable"]


def search_waste_items(query: str) -> List[Dict[str, Any]]:
    """Guide entries whose items contain the query, each with its matching items."""
    search_term = query.lower()
    results = []
    for guide in WASTE_GUIDE.values():
        matching_items = [item for item in guide["items"] if search_term in item.lower()]
        if matching_items:
            results.append({**guide, "matching_items": matching_items})
    return results
