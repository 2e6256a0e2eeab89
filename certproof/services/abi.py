"""ABI fragments for the contracts certproof reads."""

from __future__ import annotations


def _view(name: str, inputs: list[tuple[str, str]], outputs: list[dict]) -> dict:
    return {
        "type": "function",
        "name": name,
        "stateMutability": "view",
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": outputs,
    }


_UINT = [{"name": "", "type": "uint256"}]
_BOOL = [{"name": "", "type": "bool"}]

TRAINING_CERTIFICATION_ABI: list[dict] = [
    _view("balanceOf", [("account", "address"), ("id", "uint256")], _UINT),
    _view("getMintTimestamp", [("tokenId", "uint256"), ("holder", "address")], _UINT),
    _view("getExpiryTimestamp", [("tokenId", "uint256"), ("holder", "address")], _UINT),
    _view("isValid", [("tokenId", "uint256"), ("holder", "address")], _BOOL),
    _view(
        "isValidBatch",
        [("tokenId", "uint256"), ("holders", "address[]")],
        [{"name": "", "type": "bool[]"}],
    ),
    _view("getTotalCourses", [], _UINT),
    _view(
        "getCourse",
        [("tokenId", "uint256")],
        [
            {
                "name": "",
                "type": "tuple",
                "components": [
                    {"name": "courseCode", "type": "string"},
                    {"name": "courseName", "type": "string"},
                    {"name": "imageURI", "type": "string"},
                    {"name": "validityDuration", "type": "uint256"},
                    {"name": "exists", "type": "bool"},
                ],
            }
        ],
    ),
]

# ERC-1271: contract wallets return this selector when they accept a signature.
ERC1271_MAGIC_VALUE = bytes.fromhex("1626ba7e")

ERC1271_ABI: list[dict] = [
    _view(
        "isValidSignature",
        [("hash", "bytes32"), ("signature", "bytes")],
        [{"name": "magicValue", "type": "bytes4"}],
    ),
]
