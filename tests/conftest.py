"""
Pytest configuration and shared fixtures for flow analyzer tests.
"""
import json
import pytest

from flow_analyzer import FlowAnalyzer
from flow_analyzer.core.exceptions import CounterStoreError
from flow_analyzer.core.types import ExecutionStep
from flow_analyzer.processors import build_record_from_steps
from flow_analyzer.storage import InMemoryCounterStore

VAULT = '0xVault1234567890abcdef1234567890abcdef12'
USDC = '0xUSDC1234567890abcdef1234567890abcdef12'
STRATEGY = '0xStrat1234567890abcdef1234567890abcdef12'
YIELD = '0xYield1234567890abcdef1234567890abcdef12'
LENDING = '0xLend1234567890abcdef1234567890abcdef123'
ORACLE = '0xOracle234567890abcdef1234567890abcdef1'


def step(depth, function_name, contract=VAULT, status='success', **kwargs):
    """Shorthand for building an ExecutionStep in tests."""
    return ExecutionStep(
        depth=depth,
        contract_address=contract,
        function_name=function_name,
        status=status,
        **kwargs
    )


@pytest.fixture
def sample_raw_trace():
    """Raw call tracer output: deposit -> transferFrom, allocateFunds -> deployCapital (reverts)."""
    return {
        "type": "CALL",
        "from": "0xuser",
        "to": VAULT,
        "input": "0xb6b55f250000000000000000000000000000000000000000000000000000000000000064",
        "gasUsed": "0xafc8",
        "calls": [
            {
                "type": "CALL",
                "to": USDC,
                "input": "0x23b872dd00000000",
                "gasUsed": "0x88b8",
            },
            {
                "type": "DELEGATECALL",
                "to": STRATEGY,
                "input": "0x8f6ede1f",
                "gasUsed": "0x9c40",
                "calls": [
                    {
                        "type": "CALL",
                        "to": YIELD,
                        "input": "0x4e71d92d",
                        "gasUsed": "0x3a98",
                        "error": "execution reverted",
                        "revertReason": "YieldStrategy: Contract paused",
                    }
                ],
            },
        ],
    }


@pytest.fixture
def example_steps():
    """Root, child, reverted grandchild, then a second child of the root."""
    return [
        step(0, 'deposit'),
        step(1, 'allocateFunds', STRATEGY),
        step(2, 'deployCapital', YIELD, status='revert', revert_reason='paused'),
        step(1, 'transfer', USDC),
    ]


@pytest.fixture
def sample_records():
    """Flows with max depths [4, 4, 3, 1], timestamps increasing."""
    deposit = build_record_from_steps('0xdeposit', [
        step(0, 'deposit'),
        step(1, 'transferFrom', USDC),
        step(1, 'allocateFunds', STRATEGY),
        step(2, 'deployCapital', YIELD),
        step(3, 'supply', LENDING),
        step(4, 'accrueInterest', LENDING),
    ], timestamp=1000)
    withdraw = build_record_from_steps('0xwithdraw', [
        step(0, 'withdraw'),
        step(1, 'withdrawFunds', STRATEGY),
        step(2, 'withdrawCapital', YIELD),
        step(3, 'redeem', LENDING),
        step(4, 'accrueInterest', LENDING, status='revert', revert_reason='Insufficient liquidity'),
    ], timestamp=2000)
    rebalance = build_record_from_steps('0xrebalance', [
        step(0, 'rebalance'),
        step(1, 'harvestYield', STRATEGY),
        step(2, 'claimRewards', YIELD),
        step(3, 'getPrice', ORACLE),
    ], timestamp=3000)
    stale = build_record_from_steps('0xstale', [
        step(0, 'withdraw'),
        step(1, 'getPrice', ORACLE, status='revert', revert_reason='Oracle: Price data stale'),
    ], timestamp=4000)
    return [deposit, withdraw, rebalance, stale]


@pytest.fixture
def analyzer():
    """Fresh analyzer with in-memory stores."""
    return FlowAnalyzer()


class FailingCounterStore(InMemoryCounterStore):
    """Counter store whose writes fail, for error propagation tests."""

    def upsert(self, key, entry):
        raise CounterStoreError("counter backend offline")


@pytest.fixture
def failing_counter_store():
    return FailingCounterStore()


@pytest.fixture
def temp_json_file(tmp_path):
    """Create a temporary JSON file and return a helper function."""
    def _create_file(data, name=None):
        file_path = tmp_path / (name or f"test_{id(data)}.json")
        with open(file_path, "w") as f:
            json.dump(data, f)
        return str(file_path)

    return _create_file


@pytest.fixture
def make_step():
    """Factory for ExecutionSteps: make_step(depth, name, contract, status, **extra)."""
    return step
