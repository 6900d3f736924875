"""
Museum Curator Agent (curator-agent)

Searches several independent museum collection APIs (The Met, Rijksmuseum,
Victoria & Albert Museum) and returns one normalised result set.

Flow (high-level):
- Coordinator = fans the query out to one agent per museum, in parallel
- Source agents = translate the query, fetch, and standardise each record
- Cascade      = Rijksmuseum only; tries title → creator → description
- Fetch        = bounded worker pool for per-ID detail records

Nothing is persisted: every search is answered live from the upstreams.
"""
__all__ = ["agents"]
__version__ = "0.1.0"
