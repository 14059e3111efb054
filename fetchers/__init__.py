# fetchers/__init__.py
from . import tcgplayer

# Cached catalog queries by cache-key operation name.
FETCHERS = {
    "get_product_details": tcgplayer.get_product_details,
    "search": tcgplayer.search,
    "card_image_b64": tcgplayer.card_image_b64,
}
