import sys
from pathlib import Path

from nvremote import crypto

# Quick one-off cert for a local test relay.
# - Self-signed, EC P-256, CN = the host name you'll connect with.
# - Written unencrypted under ~/.nvremote/relay/ (fine for local testing).
# - Prints the hex pin so you can compare it with what `--mode trust` shows.

host = sys.argv[1] if len(sys.argv) > 1 else "127.0.0.1"

# 1) Generate the certificate and key.
cert_der, key_pem = crypto.generate_self_signed(host)

# 2) Make sure ~/.nvremote/relay exists.
out_dir = Path.home() / ".nvremote" / "relay"
out_dir.mkdir(parents=True, exist_ok=True)

# 3) Save PEM files, ready for ssl.SSLContext.load_cert_chain().
(out_dir / "relay_cert.pem").write_bytes(crypto.der_to_pem(cert_der))
(out_dir / "relay_key.pem").write_bytes(key_pem)

# 4) Print what a client would pin.
print(f"Wrote {out_dir / 'relay_cert.pem'} and {out_dir / 'relay_key.pem'}")
print(f"SHA-256: {crypto.sha256_digest(cert_der)}")
print("Pin (hex):")
print(crypto.cert_to_hex(cert_der))
