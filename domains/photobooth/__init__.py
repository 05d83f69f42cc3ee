"""
Photobooth Domain

Turns photos dropped into the input folder into short Halloween videos:
- hasher.py - content + metadata fingerprint for each photo
- ledger.py - durable record of which photos were already sent out
- storage.py - input scanning and gallery folders
- publisher.py - moves generated videos into the output folder
- watcher.py - poll loop driving analysis -> generation -> publish
- collaborators/ - Gemini prompt analysis and WAN video generation clients

Every photo is submitted to the paid generation APIs at most once.
"""

__all__ = ["collaborators", "errors", "hasher", "ledger", "models", "publisher", "storage", "watcher"]
