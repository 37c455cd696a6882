"""Optional experiment tracking for batch runs."""

from .mlflow_logger import MlflowLogger

__all__ = ["MlflowLogger"]
