"""
Walk through the proof and registration flow against a running backend.

Usage:
    # Start the backend
    proofgate

    # In another shell
    python examples/client_flow.py http://localhost:3000

The script prints the session URL (scan it, or open
/reclaim/sessions/<id>/qr.png), waits for the proof-issuing app's callback,
then asks for employee details.
"""

import asyncio
import sys

import httpx

from proofgate import ClientState, ClientStateCoordinator


async def run(base_url: str) -> int:
    async with httpx.AsyncClient(base_url=base_url, timeout=10.0) as http:
        flow = ClientStateCoordinator(http)

        input("Press Enter to start the GitHub proof...")
        url = await flow.start()
        if url is None:
            print(f"Could not start: {flow.status_message}")
            return 1

        print(f"Scan this URL with the proof app:\n  {url}")
        print(f"QR code: {base_url}/reclaim/sessions/{flow.session_id}/qr.png")
        if not await flow.await_proof(timeout_s=300):
            print(flow.status_message)
            return 1
        print(flow.status_message)

        while flow.state is not ClientState.REGISTRATION_SUBMITTED:
            employee_id = input("Employee id: ").strip()
            department = input("Department: ").strip()
            name = input("Name: ").strip()
            await flow.submit_registration(employee_id, department, name)
            print(flow.status_message)
            if flow.state is ClientState.FAILED:
                flow.retry()

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(run(sys.argv[1] if len(sys.argv) > 1 else "http://localhost:3000")))
