"""
Audio Service - All audio operations
Handles microphone capture, transcription, and metadata extraction
"""

import os
import tempfile
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import speech_recognition as sr
from mutagen import File
from openai import OpenAI
from pydub import AudioSegment
from pydub.utils import which

from config.config import OPENAI_API_KEY, OPENAI_TRANSCRIPTION_MODEL

logger = logging.getLogger(__name__)

# Returned by mock transcription and used for the demo recordings
MOCK_TRANSCRIPT = (
    "I am going to start talking about a lot of things. What I need you to do is make all of the "
    "things that I'm talking about actionable for me. And prioritize them accordingly. Starting now. "
    "So I need to do my taxes. I need to throw away the the small batches of batches of trees, my "
    "family and I cut up find somewhere to dispose of that. I need to go buy some clothes for next "
    "week. Plan some time for my vacation time as I need some time to get away and be alone, since "
    "I'm I'm feeling kind of burnt out from work. I need to help my mom get her driver's license. "
    "Need to take, my dog to a doctor etcetera. Find time for me based off my calendar of 6 pm edt."
)


class AudioService:
    def __init__(self, openai_api_key: Optional[str] = None, mock: bool = False):
        self.recognizer = sr.Recognizer()
        self.mock = mock

        api_key = openai_api_key or OPENAI_API_KEY
        self.openai_client = OpenAI(api_key=api_key) if api_key else None

        # Check if ffmpeg is available for audio conversion
        AudioSegment.converter = which("ffmpeg")
        AudioSegment.ffmpeg = which("ffmpeg")
        AudioSegment.ffprobe = which("ffprobe")

    def record_memo(self, output_path: str, max_seconds: int = 120,
                    wait_timeout: int = 10) -> Optional[Tuple[str, float]]:
        """
        Record a voice memo from the default microphone into a WAV file

        Recording stops after a pause in speech or after max_seconds.

        Returns:
            (path, duration_seconds), or None if nobody spoke before wait_timeout
        """
        try:
            microphone = sr.Microphone(sample_rate=16000)
        except AttributeError as e:
            # SpeechRecognition raises AttributeError when PyAudio is missing
            raise RuntimeError("Microphone capture needs PyAudio: pip install pyaudio") from e

        logger.info(f"Recording voice memo (max {max_seconds}s)...")
        try:
            with microphone as source:
                self.recognizer.adjust_for_ambient_noise(source, duration=0.5)
                audio = self.recognizer.listen(source, timeout=wait_timeout, phrase_time_limit=max_seconds)
        except sr.WaitTimeoutError:
            logger.warning(f"No speech detected within {wait_timeout}s")
            return None

        output = Path(output_path)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(audio.get_wav_data())

        duration = len(audio.frame_data) / float(audio.sample_rate * audio.sample_width)
        logger.info(f"Saved recording to {output} ({duration:.1f}s)")
        return str(output), duration

    def transcribe_audio(self, audio_file_path: str) -> Optional[str]:
        """
        Main transcription method that tries different approaches
        """
        if self.mock:
            logger.info(f"Mock transcription for: {audio_file_path}")
            return MOCK_TRANSCRIPT

        logger.info(f"Transcribing: {audio_file_path}")

        if self.openai_client:
            transcript = self._transcribe_with_openai(audio_file_path)
            if transcript:
                logger.info("Successfully transcribed with OpenAI")
                return transcript

            logger.info("OpenAI transcription failed, trying Google...")

        # Fallback to Google speech recognition
        transcript = self._transcribe_with_google(audio_file_path)
        if transcript:
            logger.info("Successfully transcribed with Google speech recognition")
            return transcript

        logger.error("All transcription methods failed")
        return None

    def _transcribe_with_openai(self, audio_file_path: str) -> Optional[str]:
        """
        Use the hosted OpenAI speech-to-text endpoint
        """
        try:
            with open(audio_file_path, 'rb') as audio_file:
                result = self.openai_client.audio.transcriptions.create(
                    model=OPENAI_TRANSCRIPTION_MODEL,
                    file=audio_file
                )
            text = (result.text or "").strip()
            return text or None
        except Exception as e:
            logger.error(f"Error in OpenAI transcription: {e}")
            return None

    def _transcribe_with_google(self, audio_file_path: str) -> Optional[str]:
        """
        Fallback transcription using Google Speech Recognition
        """
        temp_wav = None
        try:
            # Convert to WAV format for speech recognition
            temp_wav = self._convert_to_wav(audio_file_path)

            with sr.AudioFile(temp_wav) as source:
                self.recognizer.adjust_for_ambient_noise(source, duration=0.5)
                audio = self.recognizer.record(source)

            return self.recognizer.recognize_google(audio)

        except sr.UnknownValueError:
            logger.warning("Google Speech Recognition could not understand audio")
            return None
        except sr.RequestError as e:
            logger.error(f"Could not request results from Google Speech Recognition: {e}")
            return None
        except Exception as e:
            logger.error(f"Error in Google speech recognition: {e}")
            return None
        finally:
            if temp_wav and os.path.exists(temp_wav):
                os.unlink(temp_wav)

    def _convert_to_wav(self, audio_file_path: str) -> str:
        """
        Convert audio file to WAV format for processing
        """
        try:
            audio = AudioSegment.from_file(audio_file_path)

            # Mono 16kHz is what speech recognition expects
            audio = audio.set_channels(1).set_frame_rate(16000)

            temp_file = tempfile.NamedTemporaryFile(delete=False, suffix='.wav')
            temp_file.close()

            audio.export(temp_file.name, format="wav")
            return temp_file.name

        except Exception as e:
            logger.error(f"Error converting audio to WAV: {e}")
            raise

    def get_audio_metadata(self, audio_file_path: str) -> Dict[str, Any]:
        """
        Extract audio metadata including duration, file size, creation date
        """
        try:
            file_path = Path(audio_file_path)

            stat = file_path.stat()
            metadata = {
                'file_size': stat.st_size,
                'file_created': datetime.fromtimestamp(stat.st_ctime),
                'file_modified': datetime.fromtimestamp(stat.st_mtime),
                'duration_seconds': 0.0
            }

            # Try to get audio duration using mutagen
            try:
                audio_file = File(audio_file_path)
                if audio_file and audio_file.info:
                    metadata['duration_seconds'] = float(audio_file.info.length)
                else:
                    # Fallback to pydub for duration
                    try:
                        audio_segment = AudioSegment.from_file(audio_file_path)
                        metadata['duration_seconds'] = len(audio_segment) / 1000.0
                    except Exception:
                        logger.warning(f"Could not determine duration for {audio_file_path}")
            except Exception as e:
                logger.warning(f"Error reading audio metadata: {e}")

            return metadata

        except OSError as e:
            logger.error(f"Error extracting audio metadata: {e}")
            return {
                'file_size': 0,
                'file_created': None,
                'file_modified': None,
                'duration_seconds': 0.0
            }
