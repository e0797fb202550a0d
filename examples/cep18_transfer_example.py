#!/usr/bin/env python3
"""
CEP-18 token transfer tagged with an sr_id, then read the tag back.
"""
import logging
import os

from txflow_sdk import ClientConfig, ExecutionFailed, LocalSigner, TxFlowClient, TxFlowError

PACKAGE_HASH = "b72183e301022030195350876ce3226d0067aee1eb3695a5252ee2b85eabe741"
RECIPIENT = "account-hash-040fe59024a78372bc1225cfd5ed258eacdbbc7c5d09d35767777dc10c5d14ca"
AMOUNT = 1000


def main():
    """
    Demonstrate a CEP-18 `transfer` call.

    A reverted call still lands on chain; its error message is reported as is.
    """
    logging.basicConfig(level=logging.INFO)

    KEY_PATH = os.environ.get("TXFLOW_SECRET_KEY_PATH")
    if not KEY_PATH:
        print("ERROR: TXFLOW_SECRET_KEY_PATH environment variable is required")
        return

    signer = LocalSigner.from_pem_file(KEY_PATH)
    config = ClientConfig.from_env()

    print("[x] Running CEP-18 transfer example")
    print(f"[x] Public key: {signer.public_key.to_hex()}")

    with TxFlowClient(config, signer) as client:
        try:
            confirmed = client.send_cep18_transfer(PACKAGE_HASH, RECIPIENT, AMOUNT, sr_id=63)
        except ExecutionFailed as e:
            print(f"[x] Transaction {e.address} failed: {e.error_message}")
            return
        except TxFlowError as e:
            print(f"Error sending transfer: {str(e)}")
            return

        print(f"[x] Transaction Hash: {confirmed.address}")
        print(f"[x] Extracted sr_id argument value: {confirmed.extracted.render('sr_id')}")
        print("[x] CEP-18 transfer example finished")


if __name__ == "__main__":
    main()
