"""
Zero-knowledge primitives for the shielded pool: field helpers, Poseidon,
BN254 pairings, Groth16, and the verifier registry under zk.verifiers.
"""
