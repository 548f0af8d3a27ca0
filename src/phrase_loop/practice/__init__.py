from .progress import PracticeSession, SegmentProgress

__all__ = ["PracticeSession", "SegmentProgress"]
