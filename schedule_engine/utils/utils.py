import random
import string
import time


def generate_id(prefix: str = "id") -> str:
    """
    Builds a unique identifier from the current time and a random suffix.

    Example: "ss_1715331200123_k3j9x0a2b"
    """
    suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"
