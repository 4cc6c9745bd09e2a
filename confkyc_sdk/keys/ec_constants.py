"""
Constants for HD key derivation over secp256k1.
"""

# Order of the secp256k1 curve; child keys are reduced modulo N
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

# Valid private scalars lie in [1, N-1]
SECP256K1_MIN = 1
SECP256K1_MAX = SECP256K1_N - 1

# HMAC key for the BIP-32 master node
MASTER_HMAC_KEY = b"Bitcoin seed"

# Indices at or above this offset are hardened
HARDENED_OFFSET = 0x80000000

# BIP-44 purpose and the ledger's registered coin type
PURPOSE = 44
COIN_TYPE = 2400
