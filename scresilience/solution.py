"""Solution record: weekly trajectories plus cost breakdown."""

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from .data import WEEKS_PER_YEAR
from .solver import Status

SERIES = (
    "supplier_prod",
    "plant_prod",
    "dc_transfer",
    "wip",
    "fg_to_dc",
    "fg_to_customer",
    "fg_stock",
    "lost_sales",
    "backup_supplier",
    "backup_plant",
    "backup_dc",
    "backup_wip_stock",
    "backup_fg_stock",
    "backup_wip_transfer",
    "backup_fg_transfer",
)


def _zeros():
    return np.zeros(WEEKS_PER_YEAR)


@dataclass(eq=False)
class Solution:
    supplier_prod: np.ndarray = field(default_factory=_zeros)
    plant_prod: np.ndarray = field(default_factory=_zeros)
    dc_transfer: np.ndarray = field(default_factory=_zeros)
    wip: np.ndarray = field(default_factory=_zeros)
    fg_to_dc: np.ndarray = field(default_factory=_zeros)
    fg_to_customer: np.ndarray = field(default_factory=_zeros)
    fg_stock: np.ndarray = field(default_factory=_zeros)
    lost_sales: np.ndarray = field(default_factory=_zeros)
    backup_supplier: np.ndarray = field(default_factory=_zeros)
    backup_plant: np.ndarray = field(default_factory=_zeros)
    backup_dc: np.ndarray = field(default_factory=_zeros)
    backup_wip_stock: np.ndarray = field(default_factory=_zeros)
    backup_fg_stock: np.ndarray = field(default_factory=_zeros)
    backup_wip_transfer: np.ndarray = field(default_factory=_zeros)
    backup_fg_transfer: np.ndarray = field(default_factory=_zeros)

    fill_rate_slack: float = 0.0
    inventory_cost: float = 0.0
    lost_sales_cost: float = 0.0
    fill_rate_penalty: float = 0.0
    backup_cost: float = 0.0
    risk_cost: float = 0.0
    total_cost: float = 0.0

    policy: Optional[object] = None
    scenario_costs: List[float] = field(default_factory=list)
    status: Status = Status.UNKNOWN
    converged: bool = False

    @classmethod
    def empty(cls, status=Status.UNKNOWN):
        """All-zero record flagged as not converged."""
        return cls(status=status, converged=False)

    @property
    def operations_cost(self):
        return self.inventory_cost + self.lost_sales_cost + self.fill_rate_penalty

    @property
    def item_fill_ratio(self):
        delivered = self.fg_to_customer.sum()
        demand = delivered + self.lost_sales.sum()
        return 1.0 if demand == 0 else delivered / demand

    def series(self):
        return {name: getattr(self, name) for name in SERIES}

    def summary(self):
        lines = [
            f"status            {self.status.value}{'' if self.converged else ' (not converged)'}",
            f"total cost        {self.total_cost:12.2f}",
            f"  backup cost     {self.backup_cost:12.2f}",
            f"  inventory cost  {self.inventory_cost:12.2f}",
            f"  lost sales cost {self.lost_sales_cost:12.2f}",
            f"  IFR penalty     {self.fill_rate_penalty:12.2f}",
            f"  risk cost       {self.risk_cost:12.2f}",
            f"item fill ratio   {self.item_fill_ratio:12.4f}",
        ]
        if self.policy is not None:
            lines.append(f"policy            {self.policy.describe()}")
        return "\n".join(lines)

    def table(self):
        """Week-by-week table of every trajectory."""
        header = "week " + " ".join(f"{name[:10]:>10}" for name in SERIES)
        rows = [header]
        for week in range(len(self.supplier_prod)):
            rows.append(
                f"{week:4d} "
                + " ".join(f"{getattr(self, name)[week]:10.2f}" for name in SERIES)
            )
        return "\n".join(rows)


