"""Weekly trajectory plots of a Solution."""

import matplotlib.pyplot as plt
import numpy as np

PANELS = (
    ("Regular production", ("supplier_prod", "plant_prod", "dc_transfer")),
    ("Backup usage", ("backup_supplier", "backup_plant", "backup_dc",
                      "backup_wip_transfer", "backup_fg_transfer")),
    ("Stocks", ("fg_stock", "backup_wip_stock", "backup_fg_stock")),
    ("Customer", ("fg_to_customer", "lost_sales")),
)


def plot_solution(solution, path=None, title=None):
    """Four stacked panels of weekly flows; saved to ``path`` when given."""
    fig, axes = plt.subplots(len(PANELS), 1, figsize=(10, 11), sharex=True)
    weeks = np.arange(len(solution.supplier_prod))

    for ax, (label, names) in zip(axes, PANELS):
        for name in names:
            ax.plot(weeks, getattr(solution, name), label=name.replace("_", " "))
        ax.set_title(label)
        ax.set_ylabel("units")
        ax.grid(True, alpha=0.3)
        ax.legend(loc="upper right", fontsize="small")
    axes[-1].set_xlabel("week")

    fig.suptitle(title or f"Total cost {solution.total_cost:,.2f}")
    fig.tight_layout()
    if path is not None:
        fig.savefig(path, dpi=150)
        plt.close(fig)
    return fig
