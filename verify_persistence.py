"""
Persistence check: a posted payment must survive a server restart with the
ledger still balanced.
"""

import time
import subprocess
import httpx
import sys
import os
import signal
from decimal import Decimal

BASE_URL = "http://127.0.0.1:8000"
API_PREFIX = "/v1"
SERVER_CMD = [sys.executable, "-m", "uvicorn", "unitledger.app.main:app", "--host", "127.0.0.1", "--port", "8000"]
PAYMENT_ID = 900001


def wait_for_server(retries=10, delay=2):
    url = f"{BASE_URL}/health"
    print(f"Waiting for server at {url}...")
    for i in range(retries):
        try:
            resp = httpx.get(url)
            if resp.status_code == 200:
                print("✅ Server is up!")
                return True
        except httpx.ConnectError:
            pass
        time.sleep(delay)
    print("❌ Server failed to start.")
    return False


def cash_on_hand() -> Decimal:
    resp = httpx.get(f"{BASE_URL}{API_PREFIX}/accounts/code/1001")
    resp.raise_for_status()
    return Decimal(resp.json()["balance"])


def run_verification():
    # 1. Start Server (First Run)
    print("\n--- [Step 1] Starting Server (Initial) ---")
    proc = subprocess.Popen(
        SERVER_CMD,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        env={**os.environ, "DB_ECHO": "True"}
    )

    try:
        if not wait_for_server():
            server_logs = proc.communicate(timeout=2)
            print("Server Stdout:", server_logs[0].decode())
            print("Server Stderr:", server_logs[1].decode())
            raise Exception("Server start failed")

        # 2. Post a payment
        print("\n--- [Step 2] Posting Payment (Persistence Test) ---")
        existing = httpx.get(f"{BASE_URL}{API_PREFIX}/transactions/payment/{PAYMENT_ID}").json()
        if existing:
            print("⚠️ Payment already posted (persistence working from previous run?)")
        else:
            resp = httpx.post(f"{BASE_URL}{API_PREFIX}/postings/payments", json={
                "payment_id": PAYMENT_ID,
                "amount": "12.50",
                "payment_method": "CASH",
                "payment_type": "SUBS",
                "date": time.strftime("%Y-%m-%d"),
                "description": "Persistence check",
            })
            if resp.status_code != 201:
                print(f"❌ Posting Failed: {resp.status_code} {resp.text}")
                raise Exception("Posting failed")
            print("✅ Payment Posted")

        balance_before = cash_on_hand()
        print(f"Cash on hand: {balance_before}")

    finally:
        print("\n--- [Step 3] Stopping Server ---")
        proc.send_signal(signal.SIGTERM)
        proc.wait()

    time.sleep(2)  # Wait for port release

    # 3. Restart Server
    print("\n--- [Step 4] Restarting Server (Verification) ---")
    proc2 = subprocess.Popen(SERVER_CMD, stdout=subprocess.PIPE, stderr=subprocess.PIPE)

    try:
        if not wait_for_server():
            raise Exception("Server restart failed")

        print("\n--- [Step 5] Checking Ledger (Post-Restart) ---")
        posted = httpx.get(f"{BASE_URL}{API_PREFIX}/transactions/payment/{PAYMENT_ID}").json()
        if not posted:
            raise Exception("Payment transaction missing after restart")
        if cash_on_hand() != balance_before:
            raise Exception("Cash on hand changed across restart")
        print("✅ Transaction and balance persisted")

        print("\n--- [Step 6] Verifying Ledger Integrity ---")
        report = httpx.get(f"{BASE_URL}{API_PREFIX}/ledger/integrity").json()
        if report["is_consistent"]:
            print("✅ Stored balances match transaction history")
        else:
            print(f"❌ Ledger drift detected: {report}")
            raise Exception("Ledger integrity check failed")

    finally:
        print("\n--- [Step 7] Stopping Server ---")
        proc2.send_signal(signal.SIGTERM)
        proc2.wait()


if __name__ == "__main__":
    run_verification()
