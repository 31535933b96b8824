"""
SpeechDesk: voice profiles, batch text-to-speech jobs and archive delivery.
"""
