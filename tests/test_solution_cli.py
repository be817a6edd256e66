import pytest

from scresilience.cli import main, parse_args
from scresilience.data import WEEKS_PER_YEAR
from scresilience.solution import SERIES, Solution
from scresilience.solver import Status


def test_empty_solution_is_flagged():
    solution = Solution.empty(Status.INFEASIBLE)
    assert not solution.converged
    assert solution.status is Status.INFEASIBLE
    assert all(len(v) == WEEKS_PER_YEAR and not v.any() for v in solution.series().values())
    assert "not converged" in solution.summary()


def test_table_has_a_row_per_week():
    table = Solution().table().splitlines()
    assert len(table) == WEEKS_PER_YEAR + 1
    assert len(table[0].split()) == len(SERIES) + 1


def test_parse_args_defaults():
    args = parse_args(["full"])
    assert args.model == "full"
    assert args.risk == "neutral"
    assert (args.m, args.n, args.n2) == (2, 1000, 5000)
    assert not args.strict_fill_rate


def test_parse_args_rejects_unknown_risk():
    with pytest.raises(SystemExit):
        parse_args(["discrete", "--risk", "regret"])


def test_deterministic_command(capsys):
    pytest.importorskip("gurobipy")
    assert main(["deterministic"]) == 0
    out = capsys.readouterr().out
    assert "total cost" in out


def test_solutions_compare_by_identity():
    first, second = Solution(), Solution()
    assert first != second
    assert first in [second, first]
    assert second not in [first]
