#!/usr/bin/env python3
"""
Native token transfer tagged with an sr_id, then read the tag back.
"""
import logging
import os

from txflow_sdk import ClientConfig, LocalSigner, TxFlowClient, TxFlowError

RECIPIENT = "0202f5a92ab6da536e7b1a351406f3744224bec85d7acbab1497b65de48a1a707b64"
AMOUNT = "4200000000"


def main():
    """
    Demonstrate a native transfer.

    This example shows how to:
    1. Load a signing key from a PEM file
    2. Send a native transfer carrying a 32-byte sr_id tag
    3. Extract the sr_id from the finalized transaction
    """
    logging.basicConfig(level=logging.INFO)

    # Read configuration from environment
    KEY_PATH = os.environ.get("TXFLOW_SECRET_KEY_PATH")
    if not KEY_PATH:
        print("ERROR: TXFLOW_SECRET_KEY_PATH environment variable is required")
        return

    signer = LocalSigner.from_pem_file(KEY_PATH)
    config = ClientConfig.from_env()

    print("[x] Running native transfer example")
    print(f"[x] Public key: {signer.public_key.to_hex()}")

    with TxFlowClient(config, signer) as client:
        try:
            confirmed = client.send_native_transfer(RECIPIENT, AMOUNT, sr_id=15)
        except TxFlowError as e:
            print(f"Error sending transfer: {str(e)}")
            return

        print(f"[x] Transaction Hash: {confirmed.address}")
        extracted = client.extract_sr_id(confirmed.address)
        print(f"[x] Extracted sr_id argument value: {extracted.render('sr_id')}")
        print("[x] Native transfer example finished")


if __name__ == "__main__":
    main()
