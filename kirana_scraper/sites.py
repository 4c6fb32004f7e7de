"""Site identifiers and the per-site configuration table.

Every site runs the same extraction algorithm; what differs between them
(stoplists, selectors, strikethrough rules, price ordering, location hints and
renderer hints) is data in ``SITE_CONFIGS``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from urllib.parse import quote_plus


class SiteId(str, Enum):
    DMART = "dmart"
    JIOMART = "jiomart"
    NATURESBASKET = "naturesbasket"
    ZEPTO = "zepto"
    SWIGGY = "swiggy"

    @property
    def display_name(self) -> str:
        return SITE_CONFIGS[self].display_name

    @classmethod
    def from_name(cls, value: str) -> SiteId:
        """Resolve a site token or display name (``"Nature's Basket"`` works)."""
        token = normalize_site_name(value)
        for site in cls:
            if token in (site.value, normalize_site_name(site.display_name)):
                return site
        available = ", ".join(s.value for s in cls)
        raise ValueError(f"Unknown site '{value}'. Available: {available}")


def normalize_site_name(name: str) -> str:
    """Lowercase and drop apostrophes, spaces, hyphens and underscores."""
    return "".join(ch for ch in name.lower() if ch not in "'’ -_\t")


# Strikethrough markers shared by every site.
STRIKE_SELECTORS = (
    "s",
    "del",
    "strike",
    '[style*="line-through"]',
    '[class*="strike"]',
    '[class*="line-through"]',
)

# Single-word UI terms; a name made only of these words is navigation chrome.
COMMON_STOP_TERMS = frozenset(
    {
        "home", "cart", "search", "menu", "login", "sign", "signin", "register",
        "categories", "category", "all", "checkout", "add", "remove", "quantity",
        "view", "delivery", "pickup", "filters", "filter", "sort", "price", "mrp",
        "rs", "offers", "account", "orders", "logout", "help", "close", "back",
        "next", "previous", "more", "less", "in", "up", "my", "to", "out", "of",
        "stock", "notify", "me", "buy", "now", "off", "save",
    }
)

COMMON_STOP_PHRASES = (
    "view cart",
    "shop by category",
    "my orders",
    "my account",
    "sign up",
    "log in",
    "add to cart",
    "out of stock",
)


@dataclass(frozen=True)
class SiteConfig:
    """Data-driven variation over the shared extraction algorithm."""

    site: SiteId
    display_name: str
    search_url: str
    home_url: str
    # Structured-data tier
    json_state_vars: tuple[str, ...] = ()
    json_state_paths: tuple[tuple[str, ...], ...] = ()
    # Structural tier
    name_selectors: tuple[str, ...] = ()
    name_attrs: tuple[str, ...] = ()
    card_selectors: tuple[str, ...] = ()
    card_name_selectors: tuple[str, ...] = ()
    amount_selectors: tuple[str, ...] = ()
    image_alt_stoplist: tuple[str, ...] = ()
    min_name_length: int = 3
    container_depth: int = 5
    require_price: bool = False
    # Price ordering when no strike signal separates MRP from price
    mrp_first: bool = True
    strike_selectors: tuple[str, ...] = STRIKE_SELECTORS
    # Validation
    stop_terms: frozenset[str] = COMMON_STOP_TERMS
    stop_phrases: tuple[str, ...] = COMMON_STOP_PHRASES
    # Location
    location_selectors: tuple[str, ...] = (
        '[class*="location"]',
        '[class*="pincode"]',
        '[class*="area"]',
        '[class*="address"]',
    )
    min_location_length: int = 1
    # Renderer hints (one best-effort attempt each)
    location_triggers: tuple[str, ...] = ()
    location_inputs: tuple[str, ...] = ()
    results_selector: str = "body"

    def build_search_url(self, product: str) -> str:
        return self.search_url.format(query=quote_plus(product))


SITE_CONFIGS: dict[SiteId, SiteConfig] = {
    SiteId.DMART: SiteConfig(
        site=SiteId.DMART,
        display_name="DMart",
        home_url="https://www.dmart.in",
        search_url="https://www.dmart.in/search?searchTerm={query}",
        json_state_vars=("__NEXT_DATA__",),
        name_selectors=(
            '[class*="vertical-card"][class*="title"]',
            '[class*="stretched-card"][class*="title"]',
        ),
        amount_selectors=('[class*="amount"]', '[class*="price"]'),
        location_selectors=(
            '[class*="header_pincode"]',
            'header [class*="pincode"]',
            'header [class*="location"]',
            'header [class*="area"]',
        ),
        location_triggers=(
            '[class*="header_pincode"]',
            'header [class*="pincode"]',
            'button:has-text("Pincode")',
        ),
        location_inputs=(
            'div[role="dialog"] input[type="text"]',
            'input[placeholder*="pincode" i]',
            'input[placeholder*="area" i]',
        ),
        results_selector='[class*="vertical-card"], [class*="stretched-card"]',
    ),
    SiteId.JIOMART: SiteConfig(
        site=SiteId.JIOMART,
        display_name="JioMart",
        home_url="https://www.jiomart.com",
        search_url="https://www.jiomart.com/search?q={query}",
        json_state_vars=("__NEXT_DATA__",),
        card_selectors=(
            '[class*="jm-product"]',
            '[class*="item-card"]',
            '[data-testid*="product"]',
            '[class*="product"]',
        ),
        card_name_selectors=(
            '[class*="product-title"]',
            '[class*="product-name"]',
            '[class*="item-title"]',
            '[class*="title"]',
            "h2, h3, h4, h5",
            '[class*="name"]',
        ),
        amount_selectors=('[class*="price"]', '[class*="amount"]', '[class*="cost"]'),
        min_name_length=6,
        location_selectors=(
            '[class*="location"]',
            '[class*="pincode"]',
            '[class*="area"]',
            '[class*="address"]',
            '[data-testid*="location"]',
        ),
        location_triggers=(
            'button:has-text("Deliver to")',
            '[class*="delivery-location"]',
            '[class*="pincode"]',
        ),
        location_inputs=(
            'input[placeholder*="pincode" i]',
            'input[placeholder*="area" i]',
            'input[type="text"]',
        ),
        results_selector='[class*="product"], [class*="plp-card"]',
    ),
    SiteId.NATURESBASKET: SiteConfig(
        site=SiteId.NATURESBASKET,
        display_name="Nature's Basket",
        home_url="https://www.naturesbasket.co.in",
        search_url="https://www.naturesbasket.co.in/search?q={query}",
        json_state_vars=("__NEXT_DATA__",),
        name_selectors=('a[href*="/product-detail/"]',),
        card_name_selectors=("h3",),
        container_depth=2,
        require_price=True,
        location_triggers=(
            'text="Select Location"',
            '[class*="location"]',
        ),
        location_inputs=(
            'div[role="dialog"] input[type="text"]',
            'div[role="dialog"] input',
        ),
        results_selector='a[href*="/product-detail/"]',
    ),
    SiteId.ZEPTO: SiteConfig(
        site=SiteId.ZEPTO,
        display_name="Zepto",
        home_url="https://www.zepto.com",
        search_url="https://www.zepto.com/search?query={query}",
        json_state_vars=("__NEXT_DATA__",),
        name_selectors=("img[alt], img[title]",),
        name_attrs=("alt", "title"),
        image_alt_stoplist=(
            "p3", "ad", "logo", "icon", "button", "arrow", "close", "menu", "search", "zepto",
        ),
        min_name_length=5,
        require_price=True,
        stop_terms=COMMON_STOP_TERMS | {"zepto"},
        location_selectors=(
            '[class*="location"]',
            '[class*="pincode"]',
            '[class*="area"]',
            '[class*="address"]',
            '[data-testid*="location"]',
        ),
        location_triggers=(
            'text="Select Location"',
            'button:has-text("Select Location")',
            'button:has-text("Location")',
        ),
        location_inputs=(
            'input[placeholder*="search a new address" i]',
            'input[placeholder*="search" i]',
            'input[type="text"]',
        ),
        results_selector='[data-slot-id="ProductName"], img[alt]',
    ),
    SiteId.SWIGGY: SiteConfig(
        site=SiteId.SWIGGY,
        display_name="Swiggy",
        home_url="https://www.swiggy.com/instamart",
        search_url="https://www.swiggy.com/instamart/search?custom_back=true&query={query}",
        json_state_vars=("window.___INITIAL_STATE___", "__NEXT_DATA__"),
        json_state_paths=(
            ("searchPLV2", "data", "items"),
            ("categoryListingV2", "data", "items"),
            ("campaignListingV2", "data", "items"),
            ("instamart", "searchResults"),
        ),
        card_selectors=(
            '[data-testid*="product"]',
            '[data-testid*="item-card"]',
            '[data-testid*="search-item"]',
        ),
        card_name_selectors=('[class*="title"]', '[class*="name"]', "h2, h3, h4"),
        min_name_length=6,
        require_price=True,
        stop_terms=COMMON_STOP_TERMS | {"careers", "swiggy", "instamart", "one"},
        stop_phrases=COMMON_STOP_PHRASES
        + ("careers", "swiggy one", "swiggy instamart"),
        location_selectors=(
            '[class*="location"]',
            '[class*="pincode"]',
            '[class*="area"]',
            '[class*="address"]',
            '[data-testid*="location"]',
            '[aria-label*="location"]',
            '[aria-label*="address"]',
        ),
        min_location_length=4,
        location_triggers=(
            '[data-testid*="header-location"]',
            '[data-testid*="location"]',
            'button:has-text("Setup your precise location")',
        ),
        location_inputs=(
            'input[placeholder*="search for area" i]',
            'input[placeholder*="search" i]',
        ),
        results_selector='[data-testid*="item"], [data-testid*="product"]',
    ),
}


def get_site_config(site: SiteId) -> SiteConfig:
    return SITE_CONFIGS[SiteId(site)]
