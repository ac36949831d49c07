"""
AprilTag Vision Test Suite

Structure:
- unit/: Unit tests for individual components (validator, std-devs, alerts, adapters, telemetry)
- integration/: Full vision cycles and the runner/replay path
- helpers.py: scripted camera adapters and observation builders shared by both
"""
