"""
JobControl Test Suite.

- State machine tests (dependency walk, terminal states)
- Registry tests (IDs, buckets, snapshots)
- Loop tests (tick ordering, suspend/resume/stop, fatal errors)
- Value propagation tests
- Adapter tests (filesystem, compute, command)
- Plan tests
"""
