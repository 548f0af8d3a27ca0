"""
Phrase Loop Tests
=================

Unit tests for segment analysis and segment playback.

Test Structure:
- test_analyzer.py: Silence-based segmentation
- test_energy.py: RMS windows and split-point search
- test_loader.py: WAV decoding
- test_scheduler.py: Loop/advance/stop behaviour of SegmentScheduler
- test_device.py: sounddevice media handle (sounddevice patched)
- test_progress.py: In-memory practice progress
- test_config.py: Configuration management
- test_main.py: Command line
- conftest.py: Shared fixtures and fakes

To run tests:
    pytest tests/
"""
