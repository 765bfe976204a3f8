from slowapi import Limiter
from slowapi.util import get_remote_address

# Keyed by client IP; used on the manual dispatch triggers
limiter = Limiter(key_func=get_remote_address)
