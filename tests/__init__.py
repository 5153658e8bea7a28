"""
Test Suite for Strategy Lab

Unit tests for the pricing models, the strategy engine and the tooling
around it, organized by module.

Test modules:
    - test_pricing: Black-Scholes prices, Greeks and implied volatility
    - test_american_pricing: CRR binomial tree, lattice inspection and Greeks
    - test_bjerksund_stensland: American option approximation and fallbacks
    - test_models: Strategy legs and input validation
    - test_profit_loss: Per-leg profit/loss profiles and the price grid
    - test_probability: Profit ranges, probability of profit, price sampling
    - test_calendar: Non-business day counting
    - test_engine: End-to-end strategy evaluation
    - test_export: CSV export of P/L curves
    - test_visualization: P/L charts
    - test_cli: Configuration loading, environment and CLI commands

Run all tests:
    pytest tests/ -v

Run with coverage:
    pytest tests/ --cov=strategylab --cov-report=term-missing
"""
