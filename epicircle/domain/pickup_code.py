import random
import string

PICKUP_CODE_LENGTH = 6
PICKUP_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_pickup_code(rng: random.Random | None = None) -> str:
    """Short shared secret the partner reads back on site. Not cryptographic, not checked for uniqueness."""
    rng = rng or random
    return "".join(rng.choice(PICKUP_CODE_ALPHABET) for _ in range(PICKUP_CODE_LENGTH))
