"""Demo dataset for exploring filter propagation and row operations."""

from relflow.demo.seed_data import SEED_VERSION, nycflights_model, seed_backend

__all__ = ["SEED_VERSION", "nycflights_model", "seed_backend"]
