import secrets
from typing import Callable

from gws.core.exceptions import GeneratorExhaustion

# No 0/O, 1/l/I: codes get read aloud and retyped from SMS
UNAMBIGUOUS_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghjkmnpqrstuvwxyz23456789"
# Lowercase only for tech availability codes (/ty/<code>, /tn/<code>)
AVAILABILITY_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"
SHORT_CODE_LENGTH = 6
MAX_GENERATION_ATTEMPTS = 100


def generate_code(alphabet: str = UNAMBIGUOUS_ALPHABET, length: int = SHORT_CODE_LENGTH) -> str:
    """Generate a cryptographically secure random code drawn uniformly from alphabet."""
    return ''.join(secrets.choice(alphabet) for _ in range(length))


def generate_unique_code(
    is_taken: Callable[[str], bool],
    alphabet: str = UNAMBIGUOUS_ALPHABET,
    length: int = SHORT_CODE_LENGTH,
    max_attempts: int = MAX_GENERATION_ATTEMPTS,
) -> str:
    """Draw codes until one is not taken.

    Uniqueness is only as good as ``is_taken``; callers that insert later must
    hold their own lock or rely on a unique constraint.
    """
    for _ in range(max_attempts):
        code = generate_code(alphabet, length)
        if not is_taken(code):
            return code
    raise GeneratorExhaustion(f"Failed to generate unique code after {max_attempts} attempts")


def is_well_formed(code: str, alphabet: str, length: int = SHORT_CODE_LENGTH) -> bool:
    return len(code) == length and all(ch in alphabet for ch in code)
