"""
Weather Blend: adaptive weighted-ensemble forecasting

Fuses point forecasts from three independent weather providers into one
forecast, using per-provider, per-metric weights that adapt every hour to
how much each provider's forecast moved since the previous cycle.

Architecture:
    models.py      - ProviderId, ProviderSample, WeightTriple, ledger entries
    config.py      - Settings from environment / .env
    weights.py     - WeightStore (the engine's only mutable state)
    ensemble.py    - FusionEngine (current, breakdown, 7-day blends)
    adaptation.py  - AdaptationEngine (online weight update)
    ledger.py      - HistoryLedger (accuracy + weight history)
    providers/     - NWS, OpenWeatherMap, Weatherbit adapters
    resilience.py  - retry wrapper for the adapters
    scheduler.py   - hourly / weekly cycle orchestration
    api.py         - FastAPI read surface

Entry Point:
    main.py        - loads .env, configures logging, serves the API
"""

__version__ = "1.0.0"
