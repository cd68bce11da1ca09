"""
podlabel: fetch podcast episodes featuring a person, transcribe them with
speaker diarization, label the speakers and store the results.
"""

__version__ = "0.1.0"
