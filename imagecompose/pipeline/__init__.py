"""
Batch Processing Pipeline

Per-item flow: decode -> detect region / search rotation -> plan -> compose -> encode.
Items are independent; failures are reported per item.
"""
