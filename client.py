"""
Command-line demo client for the voice relay.

Streams a 16-bit PCM WAV file to the relay as ``audio`` events, signals the end
of the utterance with ``stop``, prints transcripts as they arrive and writes the
assistant's audio to a WAV file.

Usage:
    python client.py input.wav [--url ws://localhost:3000/ws] [--output reply.wav]
"""

import argparse
import asyncio
import base64
import json
import logging
import wave
from typing import Any, Dict, Iterator, List

import websockets
from websockets.exceptions import ConnectionClosed

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("relay_client")

SAMPLE_RATE = 24000  # pcm16 at 24kHz, mono
CHUNK_MS = 100


def iter_pcm_chunks(pcm: bytes, sample_rate: int = SAMPLE_RATE, chunk_ms: int = CHUNK_MS) -> Iterator[bytes]:
    """Split raw 16-bit mono PCM into chunks of ``chunk_ms`` milliseconds."""
    chunk_size = sample_rate * 2 * chunk_ms // 1000
    for offset in range(0, len(pcm), chunk_size):
        yield pcm[offset:offset + chunk_size]


def build_audio_message(chunk: bytes) -> Dict[str, Any]:
    return {"type": "audio", "data": base64.b64encode(chunk).decode("utf-8")}


def read_wav(path: str) -> bytes:
    """Read a mono 16-bit WAV file and return its frames."""
    with wave.open(path, "rb") as wav:
        if wav.getsampwidth() != 2 or wav.getnchannels() != 1:
            raise ValueError("Input must be mono 16-bit PCM")
        if wav.getframerate() != SAMPLE_RATE:
            logger.warning(f"Input is {wav.getframerate()}Hz, the relay expects {SAMPLE_RATE}Hz")
        return wav.readframes(wav.getnframes())


def write_wav(path: str, chunks: List[bytes]) -> None:
    with wave.open(path, "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(SAMPLE_RATE)
        wav.writeframes(b"".join(chunks))


async def stream_file(websocket, pcm: bytes) -> None:
    """Send the file in real time, then commit the buffer."""
    for i, chunk in enumerate(iter_pcm_chunks(pcm)):
        await websocket.send(json.dumps(build_audio_message(chunk)))
        if i % 10 == 0:
            logger.debug(f"Sent audio chunk {i}")
        await asyncio.sleep(CHUNK_MS / 1000)
    await websocket.send(json.dumps({"type": "stop"}))
    logger.info("Audio sent, waiting for the reply")


async def receive_events(websocket, audio_chunks: List[bytes], responses_wanted: int) -> None:
    """Print relay events until the wanted number of responses completed."""
    responses = 0
    async for raw in websocket:
        event = json.loads(raw)
        event_type = event.get("type")
        if event_type == "audio":
            audio_chunks.append(base64.b64decode(event["data"]))
        elif event_type == "transcript":
            print(f"{event['role']}: {event['text']}")
        elif event_type == "vad":
            logger.info(f"VAD: {event['status']}")
        elif event_type == "response_done":
            responses += 1
            if responses >= responses_wanted:
                return
        elif event_type in ("error", "connection_closed"):
            logger.error(f"{event_type}: {event.get('message')}")
            return
        else:
            logger.info(f"Event: {event_type}")


async def run_client(url: str, input_path: str, output_path: str) -> None:
    pcm = read_wav(input_path)
    audio_chunks: List[bytes] = []

    try:
        async with websockets.connect(url) as websocket:
            logger.info(f"WebSocket connection established to {url}")
            # The greeting is the first response, the answer to the file the second
            receiver = asyncio.create_task(receive_events(websocket, audio_chunks, responses_wanted=2))
            await stream_file(websocket, pcm)
            await receiver
    except ConnectionClosed as e:
        logger.warning(f"Relay closed the connection: {e}")

    if audio_chunks:
        write_wav(output_path, audio_chunks)
        logger.info(f"Wrote {len(audio_chunks)} audio chunks to {output_path}")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Stream a WAV file through the voice relay")
    parser.add_argument("input", help="Mono 16-bit PCM WAV file at 24kHz")
    parser.add_argument("--url", default="ws://localhost:3000/ws", help="Relay WebSocket URL")
    parser.add_argument("--output", default="reply.wav", help="Where to write the assistant audio")
    return parser.parse_args(argv)


if __name__ == "__main__":
    args = parse_args()
    logger.info("Starting relay client")
    asyncio.run(run_client(args.url, args.input, args.output))
