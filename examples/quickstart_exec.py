# SPDX-License-Identifier: BSD-2-Clause
# Copyright (c) deftio llc

"""Quickstart: Run a command in a container over a raw upgraded stream.

Pulls alpine, creates and starts a container, opens an exec session
with an HTTP upgrade, sends input on stdin, and prints the demultiplexed
stdout/stderr frames. Shows the pull -> create -> exec -> attach loop.

Usage:
    python examples/quickstart_exec.py
"""

import asyncio

import dockwire
from dockwire import Multiplexer, Payload
from dockwire.url import construct_ep, encoded_pairs

IMAGE = "alpine:latest"


async def main() -> None:
    client = dockwire.client_from_config(dockwire.load_config())

    print(f"Pulling {IMAGE} ...")
    async for progress in client.post_into_stream(construct_ep("/images/create", encoded_pairs([("fromImage", IMAGE)]))):
        if "status" in progress:
            print(f"  {progress['status']}")

    created = await client.post_json(
        "/containers/create",
        Payload.json({"Image": IMAGE, "Cmd": ["sleep", "300"]}),
    )
    container_id = created["Id"]
    print(f"Created {container_id[:12]}")

    try:
        await client.post_string(f"/containers/{container_id}/start")

        exec_info = await client.post_json(
            f"/containers/{container_id}/exec",
            Payload.json(
                {
                    "Cmd": ["sh", "-c", "tr a-z A-Z; echo done >&2"],
                    "AttachStdin": True,
                    "AttachStdout": True,
                    "AttachStderr": True,
                }
            ),
        )
        duplex = await client.post_upgrade_stream(
            f"/exec/{exec_info['Id']}/start",
            Payload.json({"Detach": False, "Tty": False}),
        )

        async with Multiplexer(duplex) as mux:
            await mux.write_all(b"hello from stdin\n")
            await mux.shutdown()
            async for chunk in mux:
                print(f"[{chunk.stream_name}] {chunk.text()}", end="")
    finally:
        await client.delete_string(construct_ep(f"/containers/{container_id}", "force=true"))
        print("Container removed.")


if __name__ == "__main__":
    asyncio.run(main())
