from .charts import ChartResolver
from .dice import DiceResolver
from .penalties import administer_penalty
from .snap import apply_outcome
from .tables import TableRepository
from .timekeeping import TimeManagement

__all__ = [
    "ChartResolver",
    "DiceResolver",
    "TableRepository",
    "TimeManagement",
    "administer_penalty",
    "apply_outcome",
]
