"""
Tests for per-table commit locks
"""

import threading
import pytest
from datetime import date

from app.core.errors import CommitTimeout
from app.services.table_locks import TableLockRegistry

NIGHT = date(2030, 3, 1)
MORNING = date(2030, 3, 2)

def test_keys_are_sorted_and_span_every_day():
    keys = TableLockRegistry.keys_for([7, 6], [NIGHT, MORNING])
    
    assert keys == [(6, NIGHT), (6, MORNING), (7, NIGHT), (7, MORNING)]

def test_locks_are_released_after_the_block():
    registry = TableLockRegistry(timeout=0.5)
    
    with registry.hold(registry.keys_for([1], [NIGHT])):
        assert registry.active_keys() == [(1, NIGHT)]
    
    assert registry.active_keys() == []

def test_contended_key_times_out_as_retryable():
    registry = TableLockRegistry(timeout=0.1)
    holding = threading.Event()
    release = threading.Event()
    
    def holder():
        with registry.hold([(1, NIGHT)]):
            holding.set()
            release.wait(5)
    
    thread = threading.Thread(target=holder)
    thread.start()
    try:
        assert holding.wait(5)
        with pytest.raises(CommitTimeout) as exc_info:
            with registry.hold([(1, NIGHT), (2, NIGHT)]):
                pass
        assert exc_info.value.retryable
        assert exc_info.value.details == {"table_ids": [1, 2]}
    finally:
        release.set()
        thread.join()
    
    assert registry.active_keys() == []

def test_disjoint_tables_do_not_wait():
    registry = TableLockRegistry(timeout=0.1)
    
    with registry.hold([(1, NIGHT)]):
        with registry.hold([(2, NIGHT), (1, MORNING)]):
            assert len(registry.active_keys()) == 3

def test_failure_inside_block_releases_locks():
    registry = TableLockRegistry(timeout=0.1)
    
    with pytest.raises(RuntimeError):
        with registry.hold([(1, NIGHT)]):
            raise RuntimeError("boom")
    
    with registry.hold([(1, NIGHT)], timeout=0.1):
        pass
