from x402_gate.signers.base import SettlementSigner
from x402_gate.signers.evm_signer import EvmSettlementSigner, verify_typed_data_signature

__all__ = ["SettlementSigner", "EvmSettlementSigner", "verify_typed_data_signature"]
