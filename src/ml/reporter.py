"""Console output of anomaly scores."""
import sys
from typing import Iterable, Optional, TextIO


def report_scores(scores: Iterable[float], stream: Optional[TextIO] = None):
    """Print one line per score."""
    stream = stream or sys.stdout
    for score in scores:
        print(f"Anomaly Score: {float(score)}", file=stream)


def report_sample(score: float, stream: Optional[TextIO] = None):
    """Print the score of the hand-written sample point."""
    stream = stream or sys.stdout
    print(f"Sample Anomaly Score: {float(score)}", file=stream)


def wait_for_exit(prompt: str = "Press Enter to exit..."):
    """Block until Enter is pressed; returns at once when stdin is closed."""
    print(prompt)
    try:
        input()
    except EOFError:
        pass
