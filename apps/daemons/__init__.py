"""
Pipeline daemon orchestration app.

Launches, tracks and terminates checker daemon processes, one family per
pipeline. The orchestrator is a short-lived command; the DaemonInstance table
is its only memory between invocations.

Key concepts:
- Spawn handshake: a daemon reports its own pid through a rendezvous file
- Liveness monitor: polls spawned pids and reconciles rows when they exit
- Termination: only signals processes whose command line proves identity
- State machine: SPAWNING → RUNNING → RECONCILED (exited/terminated/stale)
"""
