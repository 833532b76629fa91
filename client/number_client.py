# number_client.py
"""
Console client for the MessageCaller relay.

    python -m client.number_client 1234 Alice

Type "<number> <text>" to send a message, "/history <number>" for a
conversation, "/who <number>" to look someone up, "/quit" to leave.
"""
import asyncio
import json
import os
import sys

import requests
import websockets

RELAY_BASE = os.environ.get("RELAY_BASE", "http://127.0.0.1:3000")
WS_URL = RELAY_BASE.replace("http", "ws", 1).rstrip("/") + "/ws"


def frame(event, data=None):
    return json.dumps({"event": event, "data": data})


def lookup(number):
    r = requests.get(f"{RELAY_BASE}/api/user/{number}", timeout=5)
    if r.status_code == 200:
        return r.json()
    return None


def show(event, data):
    if event == "registered":
        print(f"✅ Signed in as {data['userId']} ({data['user']['nickname']})")
    elif event == "signInApproved":
        print(f"✅ Sign-in approved, you are now {data['userId']}")
    elif event == "signInDenied":
        print("⛔ Sign-in denied by your other device")
    elif event == "awaitingAuthorization":
        print(f"⏳ {data['message']}")
    elif event == "messageReceived":
        print(f"\n📩 {data['from']}: {data['text']}")
    elif event == "messageSent":
        print(f"📤 sent to {data['to']}")
    elif event == "chatHistory":
        print(f"\n🧾 History with {data['targetNumber']}:")
        for m in data["messages"]:
            print(f"[{m['timestamp']}] {m['from']} -> {m['to']}: {m['text']}")
    elif event == "incomingCall":
        print(f"\n📞 Incoming call from {data['from']} ({data['caller']['nickname']})")
    elif event == "error":
        print(f"⚠️ {data['message']}")
    else:
        print(f"[{event}] {data}")


async def receive(ws):
    async for raw in ws:
        try:
            msg = json.loads(raw)
        except ValueError:
            continue
        event, data = msg.get("event"), msg.get("data") or {}
        if event == "signInRequest":
            answer = await asyncio.to_thread(input, "\n🔐 Another device wants to sign in. Allow? [y/N] ")
            decision = "approveSignIn" if answer.strip().lower() == "y" else "denySignIn"
            await ws.send(frame(decision, {"requestId": data["requestId"]}))
            continue
        show(event, data)


async def prompt(ws):
    while True:
        line = (await asyncio.to_thread(input, "> ")).strip()
        if not line:
            continue
        if line == "/quit":
            return
        if line.startswith("/history "):
            await ws.send(frame("getChatHistory", line.split(maxsplit=1)[1]))
            continue
        if line.startswith("/who "):
            number = line.split(maxsplit=1)[1]
            user = await asyncio.to_thread(lookup, number)
            print(user if user else f"No user {number}")
            continue
        to, _, text = line.partition(" ")
        if not text:
            print("Usage: <number> <text>")
            continue
        if await asyncio.to_thread(lookup, to) is None:
            print(f"⚠️ {to} is not registered")
            continue
        await ws.send(frame("sendMessage", {"to": to, "text": text}))


async def main(number, nickname="User"):
    print(f"📡 Connecting WS {WS_URL}")
    async with websockets.connect(WS_URL, ping_interval=20, ping_timeout=20) as ws:
        await ws.send(frame("register", {"number": number, "nickname": nickname}))
        reader = asyncio.create_task(receive(ws))
        try:
            await prompt(ws)
        finally:
            reader.cancel()


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)
    try:
        asyncio.run(main(*sys.argv[1:3]))
    except KeyboardInterrupt:
        pass
