#!/usr/bin/env python3
"""
VoiceCart command line.

Type or speak shopping requests; replies are printed and, when Azure Speech
is configured, spoken in a voice adapted to the shopper's mood.
"""

import asyncio
import argparse
import logging
import sys
from dotenv import load_dotenv

load_dotenv()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="voicecart",
        description="Emotion-adaptive voice shopping assistant"
    )
    parser.add_argument("--session", default=None, help="Session ID shown in logs")
    parser.add_argument("--text", default=None, help="Handle one utterance, print the reply and exit")
    parser.add_argument(
        "--voice", "-v",
        action="store_true",
        help="Listen on the microphone instead of reading typed input"
    )
    parser.add_argument(
        "--consent",
        choices=["grant", "revoke"],
        default=None,
        help="Store a voice-analysis consent decision first"
    )
    parser.add_argument("--offline", action="store_true", help="Treat the network as unreachable")
    return parser


async def run_once(orchestrator, text: str) -> None:
    await orchestrator.start()
    try:
        result = await orchestrator.process_text(text)
    finally:
        await orchestrator.shutdown()

    print(f"\nAssistant: {result.assistant_response}")
    print(f"  mood: {result.emotion.value}")
    if result.discount:
        print(f"  discount: {result.discount.percentage}%")
    print(f"  took {result.latency_ms:.0f}ms")


async def run_session(orchestrator, config, connectivity, recognizer) -> None:
    from voicecart.connectivity import ConnectivityProbe

    probe = None
    if config.connectivity_check_url:
        probe = ConnectivityProbe(connectivity, config.connectivity_check_url)
        probe.start()
    try:
        await orchestrator.run_interactive(use_voice=recognizer is not None, recognizer=recognizer)
    finally:
        if probe:
            await probe.stop()


def make_recognizer(config):
    if not config.azure_enabled:
        print("Azure Speech is not configured; falling back to typed input.")
        return None
    from voicecart.capture.azure_recognizer import AzureSpeechRecognizer
    return AzureSpeechRecognizer(
        speech_key=config.azure_speech_key,
        speech_region=config.azure_speech_region,
        language=config.speech_language
    )


def main():
    args = build_parser().parse_args()

    # Deferred so --help works without the audio and speech stacks
    from voicecart.config import AssistantConfig
    from voicecart.connectivity import ConnectivityMonitor
    from voicecart.models import ConnectivityState
    from voicecart.orchestrator import Orchestrator, OrchestratorError

    config = AssistantConfig.from_env()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    connectivity = ConnectivityMonitor(
        ConnectivityState.OFFLINE if args.offline else ConnectivityState.ONLINE
    )
    recognizer = make_recognizer(config) if args.voice and not args.text else None

    try:
        orchestrator = Orchestrator.from_config(
            config,
            session_id=args.session,
            connectivity=connectivity,
            on_response=(lambda text: print(f"\nAssistant: {text}")) if recognizer else None
        )
    except OrchestratorError as e:
        print(f"VoiceCart could not start ({e.component}): {e}", file=sys.stderr)
        sys.exit(1)

    if args.consent:
        orchestrator.consent.set_consent(args.consent == "grant")

    if args.text:
        asyncio.run(run_once(orchestrator, args.text))
    else:
        asyncio.run(run_session(orchestrator, config, connectivity, recognizer))


if __name__ == "__main__":
    main()
