"""
================================================================================
Problem Data - Supply Chain With Backup Capacity Options
================================================================================

Three-echelon chain:

    supplier --(WIP)--> plant --(FG)--> distribution centre --> customer

Every facility can be disrupted for one contiguous window per scenario.  To
mitigate this, the designer may buy ONE backup option per facility (from a
menu of 7) and hold strategic WIP / FG buffer stock.

All costs are per unit, all capacities are per week.  The horizon is one
year of WEEKS_PER_YEAR weeks.
================================================================================
"""

from collections import namedtuple
from enum import Enum

# ============================================================================
# SECTION 1: COSTS AND PRICES
# ============================================================================
RAW_MATERIAL_COST = 50.0
WIP_COST = 80.0
FG_COST = 100.0
FG_PRICE = 225.0
IRR = 0.25               # yearly inventory carrying rate
DESIRED_IFR = 0.99       # target item fill ratio over the horizon

# ============================================================================
# SECTION 2: CAPACITIES AND DEMAND
# ============================================================================
SUPPLIER_CAPACITY = 150.0
PLANT_CAPACITY = 150.0
BASE_DC_STOCK_LEVEL = 124.0
MEAN_DEMAND = 100.0
STD_DEV = 10.0

WEEKS_PER_YEAR = 52
NUM_BACKUP_OPTIONS = 7
MAX_DELAY = 6            # length of the ramp-up window (weeks)

# ============================================================================
# SECTION 3: ALGORITHM PARAMETERS
# ============================================================================
FUZZ = 1e-4                  # surrogate within FUZZ of true cost -> no cut
DUAL_ZERO_TOLERANCE = 1e-9   # smaller multipliers are dropped from cuts

# Risk measures
RISK_AVERSION_FACTOR = 1e-4
VARIABILITY_INDEX_PENALTY = 1.0
PROB_FINANCIAL_RISK_PENALTY = 10000.0
DOWNSIDE_RISK_PENALTY = 2.0
COST_TARGET = 10000.0
BIG_M = 1e6

# SAA defaults
DEFAULT_CONFIDENCE = 0.95
DEFAULT_BATCHES = 2
DEFAULT_BATCH_SIZE = 1000
DEFAULT_EVALUATION_SIZE = 5000
DEMAND_VECTORS_PER_BATCH = 5

# ============================================================================
# SECTION 4: BACKUP OPTION MENUS
# ============================================================================
# fraction: share of the facility's base capacity available as backup
# response_time: weeks from disruption onset until the backup is usable
# cost: yearly activation cost
BackupOption = namedtuple("BackupOption", ["fraction", "response_time", "cost"])

SUPPLIER_OPTIONS = (
    BackupOption(0.0, 52, 0.0),
    BackupOption(0.5, 4, 400.0),
    BackupOption(0.5, 2, 1000.0),
    BackupOption(0.5, 1, 2400.0),
    BackupOption(1.0, 6, 1000.0),
    BackupOption(1.0, 2, 3500.0),
    BackupOption(1.0, 1, 10000.0),
)

PLANT_OPTIONS = (
    BackupOption(0.0, 52, 0.0),
    BackupOption(0.5, 4, 800.0),
    BackupOption(0.5, 2, 1800.0),
    BackupOption(0.5, 1, 4000.0),
    BackupOption(1.0, 6, 1000.0),
    BackupOption(1.0, 2, 5000.0),
    BackupOption(1.0, 1, 12000.0),
)

DC_OPTIONS = (
    BackupOption(0.0, 52, 0.0),
    BackupOption(0.5, 4, 1000.0),
    BackupOption(0.5, 2, 2500.0),
    BackupOption(0.5, 1, 6000.0),
    BackupOption(1.0, 6, 1500.0),
    BackupOption(1.0, 2, 6000.0),
    BackupOption(1.0, 1, 15000.0),
)


class Facility(Enum):
    """The three disruptable echelons, in upstream-to-downstream order."""

    SUPPLIER = "supplier"
    PLANT = "plant"
    DC = "dc"

    @property
    def base_capacity(self):
        return {
            Facility.SUPPLIER: SUPPLIER_CAPACITY,
            Facility.PLANT: PLANT_CAPACITY,
            Facility.DC: MEAN_DEMAND,
        }[self]

    @property
    def nameplate_capacity(self):
        """Weekly throughput when the facility is up."""
        return {
            Facility.SUPPLIER: SUPPLIER_CAPACITY,
            Facility.PLANT: PLANT_CAPACITY,
            Facility.DC: BASE_DC_STOCK_LEVEL,
        }[self]

    @property
    def options(self):
        return {
            Facility.SUPPLIER: SUPPLIER_OPTIONS,
            Facility.PLANT: PLANT_OPTIONS,
            Facility.DC: DC_OPTIONS,
        }[self]

    def option_capacity(self, index):
        return self.base_capacity * self.options[index].fraction


FACILITIES = (Facility.SUPPLIER, Facility.PLANT, Facility.DC)
