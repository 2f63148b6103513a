"""Helpers to serialize/deserialize escrow fixtures."""

from __future__ import annotations

from typing import Any

from pact_escrow.config import HostConfig
from pact_escrow.types import Account, AccountRef, Clock, EscrowRecord, Instruction, LedgerState


def _hex_to_bytes(v: str) -> bytes:
    return bytes.fromhex(v)


def _bytes_to_hex(v: bytes) -> str:
    return v.hex()


def state_to_json(state: LedgerState) -> dict[str, Any]:
    return {
        "program_id": _bytes_to_hex(state.host.program_id),
        "lamports_per_byte_year": state.host.lamports_per_byte_year,
        "clock": {"unix_timestamp": state.clock.unix_timestamp},
        "accounts": [
            {
                "key": _bytes_to_hex(a.key),
                "lamports": a.lamports,
                "owner": _bytes_to_hex(a.owner),
                "data": _bytes_to_hex(a.data),
            }
            for a in state.accounts.values()
        ],
    }


def state_from_json(data: dict[str, Any]) -> LedgerState:
    host = HostConfig(
        program_id=_hex_to_bytes(data.get("program_id", "00" * 32)),
        lamports_per_byte_year=data.get(
            "lamports_per_byte_year", HostConfig().lamports_per_byte_year
        ),
    )
    state = LedgerState(
        clock=Clock(unix_timestamp=data.get("clock", {}).get("unix_timestamp", 0)),
        host=host,
    )
    for a in data.get("accounts", []):
        acct = Account(
            key=_hex_to_bytes(a["key"]),
            lamports=a.get("lamports", 0),
            owner=_hex_to_bytes(a.get("owner", "00" * 32)),
            data=_hex_to_bytes(a["data"]) if a.get("data") else b"",
        )
        state.accounts[acct.key] = acct
    return state


def instruction_to_json(ix: Instruction) -> dict[str, Any]:
    return {
        "program_id": _bytes_to_hex(ix.program_id),
        "accounts": [
            {
                "key": _bytes_to_hex(ref.key),
                "is_signer": ref.is_signer,
                "is_writable": ref.is_writable,
            }
            for ref in ix.accounts
        ],
        "data": _bytes_to_hex(ix.data),
    }


def instruction_from_json(data: dict[str, Any]) -> Instruction:
    return Instruction(
        program_id=_hex_to_bytes(data.get("program_id", "00" * 32)),
        accounts=[
            AccountRef(
                key=_hex_to_bytes(ref["key"]),
                is_signer=ref.get("is_signer", False),
                is_writable=ref.get("is_writable", False),
            )
            for ref in data.get("accounts", [])
        ],
        data=_hex_to_bytes(data.get("data", "")),
    )


def record_to_json(record: EscrowRecord) -> dict[str, Any]:
    return {
        "buyer": _bytes_to_hex(record.buyer),
        "seller": _bytes_to_hex(record.seller),
        "arbitrator": _bytes_to_hex(record.arbitrator) if record.arbitrator else None,
        "amount": record.amount,
        "created_at": record.created_at,
        "timeout_seconds": record.timeout_seconds,
        "terms_hash": _bytes_to_hex(record.terms_hash),
        "status": record.status.name,
        "flags": {
            "seller_delivered": record.flags.seller_delivered,
            "buyer_accepted": record.flags.buyer_accepted,
            "buyer_disputed": record.flags.buyer_disputed,
            "seller_disputed": record.flags.seller_disputed,
        },
        "nonce_bump": record.nonce_bump,
    }
