"""
WebSocket Chat Client Example
Interactive client and demo scenarios for the chat room server
"""

import asyncio
import json
import websockets
import time
from typing import Optional, Dict, Any, Set
from urllib.parse import urlencode
import argparse
import sys

DEFAULT_ROOM = "chat_room:lobby"


class ChatClient:
    """WebSocket chat client"""

    def __init__(self, server_url: str = "ws://localhost:8000/ws",
                 username: Optional[str] = None, token: Optional[str] = None):
        params = {}
        if username:
            params["username"] = username
        if token:
            params["token"] = token
        self.server_url = f"{server_url}?{urlencode(params)}" if params else server_url
        self.websocket = None
        self.connection_id: Optional[str] = None
        self.user: Optional[str] = None
        self.rooms: Set[str] = set()
        self.running = False

    async def connect(self) -> bool:
        """Open the socket and wait for the connected frame"""
        try:
            self.websocket = await websockets.connect(self.server_url)
            data = json.loads(await self.websocket.recv())
        except Exception as e:
            print(f"Connection failed: {e}")
            return False

        if data.get("event") == "connected":
            self.connection_id = data.get("connection_id")
            self.user = data.get("user")
            self.rooms = set(data.get("rooms", []))
            print(f"Connected to {self.server_url} as {self.user or self.connection_id}")
            return True

        print(f"Connection rejected: {data.get('message')}")
        return False

    async def _send(self, frame: Dict[str, Any]) -> bool:
        if not self.websocket:
            return False
        try:
            await self.websocket.send(json.dumps(frame))
            return True
        except Exception as e:
            print(f"Send failed: {e}")
            return False

    async def join_room(self, room_id: str) -> bool:
        """Join a room and wait for the ack"""
        if not await self._send({"event": "join", "room_id": room_id}):
            return False

        while True:
            data = json.loads(await self.websocket.recv())
            event = data.get("event")

            if event == "ack" and data.get("action") == "join" and data.get("room_id") == room_id:
                self.rooms.add(room_id)
                print(f"Joined {room_id} ({data.get('subscribers')} subscribers)")
                return True

            if event == "error":
                print(f"Join failed: {data.get('message')}")
                return False

            # Broadcasts from rooms already joined can arrive before the ack
            self._print_frame(data)

    async def leave_room(self, room_id: str) -> bool:
        self.rooms.discard(room_id)
        return await self._send({"event": "leave", "room_id": room_id})

    async def send_message(self, room_id: str, payload: str) -> bool:
        return await self._send({"event": "message", "room_id": room_id, "payload": payload})

    async def request_list(self) -> bool:
        return await self._send({"event": "list"})

    def _print_frame(self, data: Dict[str, Any]):
        event = data.get("event")

        if event == "message":
            sender = data.get("user") or data.get("sender", "unknown")
            stamp = time.strftime('%H:%M:%S', time.localtime(data.get("timestamp", 0)))
            print(f"[{stamp}] {data.get('room_id')} {sender}: {data.get('payload', '')}")

        elif event == "ack":
            if data.get("action") == "message":
                print(f"Delivered to {data.get('recipients', 0)} recipients "
                      f"(ID: {data.get('message_id', '')[:8]}...)")
            else:
                print(f"{data.get('action')} {data.get('room_id')} ok")

        elif event == "list":
            rooms = data.get("rooms", [])
            print(f"Active rooms ({len(rooms)}):")
            for room in rooms:
                print(f"  - {room.get('room_id')} ({room.get('subscriber_count', 0)} subscribers)")

        elif event == "error":
            print(f"Server error [{data.get('reason')}]: {data.get('message')}")

        else:
            print(f"Unhandled event: {event}")

    async def listen_for_messages(self):
        """Print incoming frames until stopped or the connection closes"""
        while self.running:
            try:
                message = await asyncio.wait_for(self.websocket.recv(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            except websockets.exceptions.ConnectionClosed:
                print("Connection closed by server")
                break
            self._print_frame(json.loads(message))

    async def disconnect(self):
        """Disconnect from server"""
        self.running = False
        if self.websocket:
            try:
                await self.websocket.close()
                print("Disconnected from server")
            except websockets.exceptions.WebSocketException as e:
                print(f"Close failed: {e}")

    async def run_interactive(self, room_id: str):
        """Run interactive chat session"""
        if not await self.connect():
            return

        if room_id not in self.rooms and not await self.join_room(room_id):
            await self.disconnect()
            return

        self.running = True
        listen_task = asyncio.create_task(self.listen_for_messages())
        loop = asyncio.get_running_loop()
        current_room = room_id

        try:
            print("Commands: /join ROOM, /leave ROOM, /list, /quit, or just type your message")
            print("-" * 50)

            while self.running:
                try:
                    user_input = await loop.run_in_executor(None, input, f"{current_room}> ")
                except (KeyboardInterrupt, EOFError):
                    break

                user_input = user_input.strip()
                if not user_input:
                    continue

                command, _, arg = user_input.partition(" ")
                if command == "/quit":
                    break
                elif command == "/list":
                    await self.request_list()
                elif command == "/join" and arg:
                    current_room = arg
                    self.rooms.add(arg)
                    await self._send({"event": "join", "room_id": arg})
                elif command == "/leave" and arg:
                    await self.leave_room(arg)
                else:
                    await self.send_message(current_room, user_input)

        finally:
            self.running = False
            listen_task.cancel()
            await self.disconnect()


async def _scripted_client(server: str, username: str, room_id: str,
                           delay: float, messages, linger: float):
    await asyncio.sleep(delay)
    client = ChatClient(server, username=username)
    if not (await client.connect() and await client.join_room(room_id)):
        return

    client.running = True
    listen_task = asyncio.create_task(client.listen_for_messages())

    for text in messages:
        await asyncio.sleep(1)
        await client.send_message(room_id, text)

    await asyncio.sleep(linger)
    client.running = False
    listen_task.cancel()
    await client.disconnect()


async def scenario_same_room(server: str):
    """Two users in the lobby; neither sees its own messages echoed"""
    print("\nScenario 1: Multi-user same-room messaging")
    print("=" * 60)
    await asyncio.gather(
        _scripted_client(server, "alice", DEFAULT_ROOM, 0, ["Hello everyone!", "Anyone here?"], 4),
        _scripted_client(server, "bob", DEFAULT_ROOM, 0.5, ["Hey Alice!"], 4),
    )
    print("Scenario 1 completed")


async def scenario_room_isolation(server: str):
    """Messages in one room never reach another"""
    print("\nScenario 2: Room isolation")
    print("=" * 60)
    await asyncio.gather(
        _scripted_client(server, "alice", "sports", 0, ["Sports fans, where are you?"], 3),
        _scripted_client(server, "charlie", "movies", 0.5, ["Anyone seen the new blockbuster?"], 3),
    )
    print("Scenario 2 completed")


async def main():
    """Main function with command line interface"""
    parser = argparse.ArgumentParser(description="WebSocket Chat Client")
    parser.add_argument("--username", help="Display username (anonymous servers)")
    parser.add_argument("--token", help="Auth token (token-protected servers)")
    parser.add_argument("--room", default=DEFAULT_ROOM, help="Room to join")
    parser.add_argument("--server", default="ws://localhost:8000/ws", help="Server URL")
    parser.add_argument("--scenario", choices=["1", "2"], help="Run demo scenario")

    args = parser.parse_args()

    if args.scenario == "1":
        await scenario_same_room(args.server)
    elif args.scenario == "2":
        await scenario_room_isolation(args.server)
    else:
        client = ChatClient(args.server, username=args.username, token=args.token)
        await client.run_interactive(args.room)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nGoodbye!")
    except Exception as e:
        print(f"Client error: {e}")
        sys.exit(1)
