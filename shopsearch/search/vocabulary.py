"""Static search vocabulary: stop-words, facet keywords and synonym tables.

All tables are built once at import time and exposed read-only. Iteration
order of ``PRIMARY_CATEGORY_KEYWORDS`` is significant: facet detection picks
the first category in this order whose synonyms appear in the query.
"""

from types import MappingProxyType

# ---------------------------------------------------------------------------
# Stop-words removed during tokenization
# ---------------------------------------------------------------------------
STOP_WORDS = frozenset({
    "for", "the", "a", "an", "and", "or", "in", "on", "at", "to", "with",
    "of", "from", "by", "as", "is", "are", "was", "were", "be", "been",
    "being", "have", "has", "had", "do", "does", "did",
})

# ---------------------------------------------------------------------------
# Primary category facet (canonical name -> colloquial synonyms)
# ---------------------------------------------------------------------------
PRIMARY_CATEGORY_KEYWORDS = MappingProxyType({
    "men": ("men", "male", "man", "mens", "men's", "mans", "gents", "gentleman"),
    "women": ("women", "female", "woman", "womens", "women's", "womans", "ladies", "lady"),
    "boys": ("boys", "boy", "boy's", "lads"),
    "girls": ("girls", "girl", "girl's"),
    "kids": ("kids", "kid", "kid's", "children", "child", "infant", "toddler", "baby", "babies"),
    "unisex": ("unisex", "neutral", "gender-neutral"),
})

# ---------------------------------------------------------------------------
# Product type facet
# ---------------------------------------------------------------------------
PRODUCT_TYPE_KEYWORDS = frozenset({
    # Apparel
    "shirt", "shirts", "t-shirt", "t-shirts", "tshirt", "tshirts",
    "jeans", "pants", "trousers", "shorts",
    "jacket", "jackets", "coat", "coats",
    "sweater", "sweaters", "hoodie", "hoodies",
    "dress", "dresses", "skirt", "skirts", "blouse", "blouses",
    # Watches
    "watch", "watches", "clock", "clocks", "timepiece",
    # Footwear
    "shoe", "shoes", "sneaker", "sneakers", "boot", "boots",
    # Bags
    "bag", "bags", "handbag", "handbags", "backpack", "backpacks",
    # Electronics
    "phone", "phones", "mobile", "mobiles", "smartphone", "smartphones",
    "laptop", "laptops", "computer", "computers", "tablet", "tablets",
    "headphone", "headphones", "earphone", "earphones", "earbud", "earbuds",
    "camera", "cameras", "tv", "television", "televisions",
    # Media and toys
    "book", "books", "novel", "novels", "magazine", "magazines",
    "toy", "toys", "game", "games", "doll", "dolls",
})

# ---------------------------------------------------------------------------
# Normalization maps (colloquial token -> canonical token)
# ---------------------------------------------------------------------------
CATEGORY_NORMALIZATION_MAP = MappingProxyType({
    "man": "men", "mans": "men", "men": "men", "mens": "men", "men's": "men",
    "male": "men", "gents": "men", "gentleman": "men",
    "woman": "women", "womans": "women", "women": "women", "womens": "women",
    "women's": "women", "female": "women", "ladies": "women", "lady": "women",
    "boy": "boys", "boys": "boys", "boy's": "boys", "lads": "boys",
    "girl": "girls", "girls": "girls", "girl's": "girls",
    "kid": "kids", "kids": "kids", "kid's": "kids", "child": "kids",
    "children": "kids", "childrens": "kids", "infant": "kids",
    "toddler": "kids", "baby": "kids", "babies": "kids",
    "toy": "toys", "toys": "toys",
    "electronic": "electronics", "electronics": "electronics",
    "appliance": "appliances", "appliances": "appliances",
})

PRODUCT_NAME_NORMALIZATION_MAP = MappingProxyType({
    "tshirt": "t-shirt", "tshirts": "t-shirt", "tee": "t-shirt", "tees": "t-shirt",
    "jeans": "jeans", "jean": "jeans", "denim": "jeans", "denims": "jeans",
    "mobile": "phone", "mobiles": "phone", "cellphone": "phone",
    "smartphone": "phone", "smartphones": "phone", "iphone": "phone", "android": "phone",
    "laptop": "laptop", "laptops": "laptop", "notebook": "laptop",
    "notebooks": "laptop", "macbook": "laptop", "computer": "laptop",
    "earphones": "headphones", "earphone": "headphones", "headphone": "headphones",
    "earbuds": "headphones", "earbud": "headphones",
    "sneakers": "shoes", "sneaker": "shoes", "footwear": "shoes",
    "sandal": "shoes", "sandals": "shoes", "flipflop": "shoes", "flipflops": "shoes",
    "slipper": "shoes", "slippers": "shoes", "boot": "shoes", "boots": "shoes",
    "shoe": "shoes",
    "shirt": "shirt", "shirts": "shirt",
    "dress": "dress", "dresses": "dress", "gown": "dress", "frock": "dress",
    "saree": "saree", "sarees": "saree", "sari": "saree", "saris": "saree",
    "kurta": "kurta", "kurtas": "kurta", "kurti": "kurta", "kurtis": "kurta",
    "pant": "pants", "pants": "pants", "trouser": "pants", "trousers": "pants",
    "jacket": "jacket", "jackets": "jacket", "coat": "jacket", "coats": "jacket",
    "sweater": "sweater", "sweaters": "sweater", "pullover": "sweater",
    "hoodie": "hoodie", "hoodies": "hoodie", "sweatshirt": "hoodie", "sweatshirts": "hoodie",
    "watch": "watch", "watches": "watch", "wristwatch": "watch", "timepiece": "watch",
    "bag": "bag", "bags": "bag", "handbag": "bag", "handbags": "bag",
    "purse": "bag", "purses": "bag", "backpack": "bag", "backpacks": "bag",
})

# ---------------------------------------------------------------------------
# Suggestion synonyms (token -> related search terms)
# ---------------------------------------------------------------------------
SYNONYMS_MAP = MappingProxyType({
    "cellphone": ("mobile", "phone", "smartphone"),
    "mobile": ("cellphone", "phone", "smartphone"),
    "smartphone": ("cellphone", "mobile", "phone"),
    "laptop": ("notebook", "computer"),
    "notebook": ("laptop", "computer"),
    "shoes": ("footwear", "sneakers"),
    "sneakers": ("shoes", "footwear"),
    "dress": ("gown", "frock"),
    "shirt": ("top", "tshirt", "t-shirt"),
    "pants": ("trousers", "jeans"),
    "watch": ("timepiece", "wristwatch"),
    "bag": ("handbag", "purse"),
})
