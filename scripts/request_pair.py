"""
Manual check of the pairing endpoint against a running server

Usage:
    python scripts/request_pair.py 919876543210 [http://localhost:8000]
"""
import asyncio
import sys

import httpx


async def request_pair(number: str, base_url: str):
    """Calls GET /pair the way a pairing web page does"""

    url = f"{base_url.rstrip('/')}/pair"
    print(f"🧪 Requesting pairing code: {url}?number={number}")

    try:
        async with httpx.AsyncClient() as client:
            # The server waits for the WhatsApp library before answering
            response = await client.get(url, params={"number": number}, timeout=90.0)

            print(f"✅ Status: {response.status_code}")
            print(f"📥 Response: {response.text[:200]}")

            data = response.json()
            if response.status_code == 200 and "pairingCode" in data:
                print(f"\n🔑 Enter this code in WhatsApp > Linked devices: {data['pairingCode']}")
            elif response.status_code == 200:
                print(f"\n📦 Session id: {data.get('sessionLink')}")
            else:
                print(f"\n❌ Pairing failed: {data.get('error')}")

    except Exception as e:
        print(f"❌ Error: {e}")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    base = sys.argv[2] if len(sys.argv) > 2 else "http://localhost:8000"
    asyncio.run(request_pair(sys.argv[1], base))
