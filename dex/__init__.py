"""
dex/ - Venue reads and exchange rates.

Modules:
- adapters.uniswap_v2: constant-product pool reader
- rate_cache: TTL cache keyed by (token_from, token_to, venue_name)
- rate_source: cached, bounded-parallel rate reads
"""
