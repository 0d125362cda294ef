"""
Hybrid recommendation engine.

    generators.py              one candidate list per signal
    hybrid.py                  selection, concurrent run, priority merge, fallback
    enrichment.py              ids -> ProductSummary
    recommendation_service.py  cache + pipeline facade
    stores.py                  storage interfaces (Supabase / in-memory backends)
"""
