"""
BCS codec for Sui TransactionData

Only what the swap executor needs: decode a V1 TransactionData, swap in a
new sender and gas data, and encode it again. The transaction kind is walked
to find where it ends and which owned objects it consumes, but its bytes are
carried through untouched.

Layout (V1):
    TransactionData::V1 {
        kind: TransactionKind,          # only ProgrammableTransaction
        sender: Address,                # 32 bytes
        gas_data: GasData { payment: vector<ObjectRef>, owner, price: u64, budget: u64 },
        expiration: TransactionExpiration,
    }
"""

import struct
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional, Set

import base58

ADDRESS_LENGTH = 32

# TransactionKind
KIND_PROGRAMMABLE = 0

# CallArg
CALL_ARG_PURE = 0
CALL_ARG_OBJECT = 1

# ObjectArg
OBJECT_ARG_IMM_OR_OWNED = 0
OBJECT_ARG_SHARED = 1
OBJECT_ARG_RECEIVING = 2

# Command
CMD_MOVE_CALL = 0
CMD_TRANSFER_OBJECTS = 1
CMD_SPLIT_COINS = 2
CMD_MERGE_COINS = 3
CMD_PUBLISH = 4
CMD_MAKE_MOVE_VEC = 5
CMD_UPGRADE = 6

# Argument
ARG_GAS_COIN = 0
ARG_INPUT = 1
ARG_RESULT = 2
ARG_NESTED_RESULT = 3

# TypeTag
TYPE_VECTOR = 6
TYPE_STRUCT = 7
_PRIMITIVE_TYPE_TAGS = {0, 1, 2, 3, 4, 5, 8, 9, 10}


class BcsError(ValueError):
    """Malformed or unsupported BCS input"""


class BcsReader:
    """Cursor over a BCS byte string"""

    def __init__(self, data: bytes):
        self._data = bytes(data)
        self._pos = 0

    @property
    def position(self) -> int:
        return self._pos

    def remaining(self) -> int:
        return len(self._data) - self._pos

    def slice(self, start: int, end: Optional[int] = None) -> bytes:
        return self._data[start:end]

    def read(self, n: int) -> bytes:
        if n < 0 or self._pos + n > len(self._data):
            raise BcsError(f"unexpected end of input at offset {self._pos} (need {n} bytes)")
        chunk = self._data[self._pos:self._pos + n]
        self._pos += n
        return chunk

    def u8(self) -> int:
        return self.read(1)[0]

    def u16(self) -> int:
        return struct.unpack("<H", self.read(2))[0]

    def u64(self) -> int:
        return struct.unpack("<Q", self.read(8))[0]

    def bool(self) -> bool:
        value = self.u8()
        if value > 1:
            raise BcsError(f"invalid bool byte {value}")
        return value == 1

    def uleb128(self) -> int:
        result = 0
        shift = 0
        while True:
            byte = self.u8()
            result |= (byte & 0x7F) << shift
            if not byte & 0x80:
                return result
            shift += 7
            if shift > 63:
                raise BcsError("uleb128 overflow")

    def address(self) -> bytes:
        return self.read(ADDRESS_LENGTH)

    def bytes_vec(self) -> bytes:
        return self.read(self.uleb128())

    def string(self) -> str:
        return self.bytes_vec().decode("utf-8")

    def vec(self, item: Callable[[], object]) -> list:
        return [item() for _ in range(self.uleb128())]


class BcsWriter:
    def __init__(self):
        self._buf = bytearray()

    def write(self, data: bytes) -> "BcsWriter":
        self._buf += data
        return self

    def u8(self, value: int) -> "BcsWriter":
        return self.write(bytes([value]))

    def u16(self, value: int) -> "BcsWriter":
        return self.write(struct.pack("<H", value))

    def u64(self, value: int) -> "BcsWriter":
        return self.write(struct.pack("<Q", value))

    def bool(self, value: bool) -> "BcsWriter":
        return self.u8(1 if value else 0)

    def uleb128(self, value: int) -> "BcsWriter":
        while True:
            byte = value & 0x7F
            value >>= 7
            if value:
                self._buf.append(byte | 0x80)
            else:
                self._buf.append(byte)
                return self

    def address(self, value: bytes) -> "BcsWriter":
        if len(value) != ADDRESS_LENGTH:
            raise BcsError(f"address must be {ADDRESS_LENGTH} bytes, got {len(value)}")
        return self.write(value)

    def bytes_vec(self, value: bytes) -> "BcsWriter":
        return self.uleb128(len(value)).write(value)

    def string(self, value: str) -> "BcsWriter":
        return self.bytes_vec(value.encode("utf-8"))

    def to_bytes(self) -> bytes:
        return bytes(self._buf)


def address_from_hex(address: str) -> bytes:
    """0x-prefixed (possibly short) hex address -> 32 bytes"""
    text = address[2:] if address.startswith("0x") else address
    if len(text) > ADDRESS_LENGTH * 2:
        raise BcsError(f"address too long: {address}")
    return bytes.fromhex(text.rjust(ADDRESS_LENGTH * 2, "0"))


def address_to_hex(address: bytes) -> str:
    return "0x" + address.hex()


@dataclass(frozen=True)
class ObjectRef:
    """(object id, version, digest) as stored in gas payment and owned inputs"""
    object_id: bytes
    version: int
    digest: bytes

    @classmethod
    def decode(cls, reader: BcsReader) -> "ObjectRef":
        return cls(reader.address(), reader.u64(), reader.bytes_vec())

    def encode(self, writer: BcsWriter) -> None:
        writer.address(self.object_id).u64(self.version).bytes_vec(self.digest)

    @classmethod
    def from_coin(cls, coin: dict) -> "ObjectRef":
        """Build from a suix_getCoins entry (digest is base58)"""
        return cls(
            object_id=address_from_hex(coin["coinObjectId"]),
            version=int(coin["version"]),
            digest=base58.b58decode(coin["digest"]),
        )

    @property
    def id_hex(self) -> str:
        return address_to_hex(self.object_id)


@dataclass
class GasData:
    payment: List[ObjectRef]
    owner: bytes
    price: int
    budget: int

    @classmethod
    def decode(cls, reader: BcsReader) -> "GasData":
        payment = reader.vec(lambda: ObjectRef.decode(reader))
        return cls(payment, reader.address(), reader.u64(), reader.u64())

    def encode(self, writer: BcsWriter) -> None:
        writer.uleb128(len(self.payment))
        for ref in self.payment:
            ref.encode(writer)
        writer.address(self.owner).u64(self.price).u64(self.budget)


@dataclass
class TransactionData:
    """
    Decoded TransactionData::V1

    Attributes:
        kind_bytes: Serialized TransactionKind, kept verbatim
        sender: 32-byte sender address
        gas_data: Gas payment, owner, price and budget
        expiration_bytes: Serialized TransactionExpiration, kept verbatim
        input_object_ids: Owned objects consumed by the kind's inputs; these
            cannot double as gas coins
    """
    kind_bytes: bytes
    sender: bytes
    gas_data: GasData
    expiration_bytes: bytes
    input_object_ids: Set[bytes] = field(default_factory=set)

    def with_gas(
        self,
        sender: bytes,
        price: int,
        budget: int,
        payment: Optional[List[ObjectRef]] = None,
        owner: Optional[bytes] = None,
    ) -> "TransactionData":
        gas = GasData(
            payment=list(self.gas_data.payment if payment is None else payment),
            owner=owner or self.gas_data.owner,
            price=price,
            budget=budget,
        )
        return replace(self, sender=sender, gas_data=gas)

    def to_bytes(self) -> bytes:
        writer = BcsWriter()
        writer.uleb128(0)  # TransactionData::V1
        writer.write(self.kind_bytes)
        writer.address(self.sender)
        self.gas_data.encode(writer)
        writer.write(self.expiration_bytes)
        return writer.to_bytes()


def _skip_type_tag(reader: BcsReader) -> None:
    tag = reader.uleb128()
    if tag in _PRIMITIVE_TYPE_TAGS:
        return
    if tag == TYPE_VECTOR:
        _skip_type_tag(reader)
    elif tag == TYPE_STRUCT:
        reader.address()
        reader.string()
        reader.string()
        for _ in range(reader.uleb128()):
            _skip_type_tag(reader)
    else:
        raise BcsError(f"unknown TypeTag variant {tag}")


def _skip_argument(reader: BcsReader) -> None:
    variant = reader.uleb128()
    if variant == ARG_GAS_COIN:
        return
    if variant in (ARG_INPUT, ARG_RESULT):
        reader.u16()
    elif variant == ARG_NESTED_RESULT:
        reader.u16()
        reader.u16()
    else:
        raise BcsError(f"unknown Argument variant {variant}")


def _skip_arguments(reader: BcsReader) -> None:
    for _ in range(reader.uleb128()):
        _skip_argument(reader)


def _skip_modules_and_deps(reader: BcsReader) -> None:
    for _ in range(reader.uleb128()):
        reader.bytes_vec()
    for _ in range(reader.uleb128()):
        reader.address()


def _skip_command(reader: BcsReader) -> None:
    variant = reader.uleb128()
    if variant == CMD_MOVE_CALL:
        reader.address()
        reader.string()
        reader.string()
        for _ in range(reader.uleb128()):
            _skip_type_tag(reader)
        _skip_arguments(reader)
    elif variant == CMD_TRANSFER_OBJECTS:
        _skip_arguments(reader)
        _skip_argument(reader)
    elif variant in (CMD_SPLIT_COINS, CMD_MERGE_COINS):
        _skip_argument(reader)
        _skip_arguments(reader)
    elif variant == CMD_PUBLISH:
        _skip_modules_and_deps(reader)
    elif variant == CMD_MAKE_MOVE_VEC:
        if reader.u8():
            _skip_type_tag(reader)
        _skip_arguments(reader)
    elif variant == CMD_UPGRADE:
        _skip_modules_and_deps(reader)
        reader.address()
        _skip_argument(reader)
    else:
        raise BcsError(f"unknown Command variant {variant}")


def _read_call_arg(reader: BcsReader, owned: Set[bytes]) -> None:
    variant = reader.uleb128()
    if variant == CALL_ARG_PURE:
        reader.bytes_vec()
        return
    if variant != CALL_ARG_OBJECT:
        raise BcsError(f"unsupported CallArg variant {variant}")

    object_variant = reader.uleb128()
    if object_variant in (OBJECT_ARG_IMM_OR_OWNED, OBJECT_ARG_RECEIVING):
        ref = ObjectRef.decode(reader)
        if object_variant == OBJECT_ARG_IMM_OR_OWNED:
            owned.add(ref.object_id)
    elif object_variant == OBJECT_ARG_SHARED:
        reader.address()
        reader.u64()
        reader.bool()
    else:
        raise BcsError(f"unknown ObjectArg variant {object_variant}")


def decode_transaction_data(data: bytes) -> TransactionData:
    """
    Decode TransactionData bytes

    Raises:
        BcsError: If the bytes are truncated, not V1, or not a programmable transaction
    """
    reader = BcsReader(data)

    version = reader.uleb128()
    if version != 0:
        raise BcsError(f"unsupported TransactionData version {version}")

    kind_start = reader.position
    kind = reader.uleb128()
    if kind != KIND_PROGRAMMABLE:
        raise BcsError(f"unsupported TransactionKind variant {kind}")

    owned: Set[bytes] = set()
    for _ in range(reader.uleb128()):
        _read_call_arg(reader, owned)
    for _ in range(reader.uleb128()):
        _skip_command(reader)
    kind_bytes = reader.slice(kind_start, reader.position)

    sender = reader.address()
    gas_data = GasData.decode(reader)

    expiration_bytes = reader.slice(reader.position)
    if not expiration_bytes:
        raise BcsError("missing transaction expiration")

    return TransactionData(
        kind_bytes=kind_bytes,
        sender=sender,
        gas_data=gas_data,
        expiration_bytes=expiration_bytes,
        input_object_ids=owned,
    )
