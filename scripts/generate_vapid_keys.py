"""
Genera un par de claves VAPID para Web Push y las escribe en backend/.env
(reemplaza VAPID_PUBLIC_KEY / VAPID_PRIVATE_KEY si ya existían).
Uso: python scripts/generate_vapid_keys.py [ruta/.env]
"""
import base64
import re
import sys
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from py_vapid import Vapid

DEFAULT_ENV = Path(__file__).resolve().parents[1] / "backend" / ".env"


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("utf-8").rstrip("=")


def generate_keys() -> dict:
    vapid = Vapid()
    vapid.generate_keys()

    public_key_bytes = vapid.public_key.public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint,
    )
    private_key_bytes = vapid.private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return {"public_key": _b64url(public_key_bytes), "private_key": _b64url(private_key_bytes)}


def update_env_file(env_path: Path, keys: dict) -> None:
    content = env_path.read_text(encoding="utf-8") if env_path.exists() else ""

    content = re.sub(r"^VAPID_PUBLIC_KEY=.*$", "", content, flags=re.MULTILINE)
    content = re.sub(r"^VAPID_PRIVATE_KEY=.*$", "", content, flags=re.MULTILINE)
    content = re.sub(r"\n\n+", "\n", content)

    content += "\n# Push Notification Keys\n"
    content += f"VAPID_PUBLIC_KEY={keys['public_key']}\n"
    content += f"VAPID_PRIVATE_KEY={keys['private_key']}\n"
    env_path.write_text(content, encoding="utf-8")


def main(argv: list[str]) -> int:
    env_path = Path(argv[1]) if len(argv) > 1 else DEFAULT_ENV

    print("Generando claves VAPID para notificaciones push...\n")
    keys = generate_keys()

    print("=" * 60)
    print("Agrega estas variables a tu .env:\n")
    print(f"VAPID_PUBLIC_KEY={keys['public_key']}")
    print(f"VAPID_PRIVATE_KEY={keys['private_key']}")
    print("=" * 60)

    try:
        update_env_file(env_path, keys)
    except OSError as e:
        print(f"\nNo se pudo actualizar {env_path} ({e}). Agrega las claves a mano.")
        return 0
    print(f"\n{env_path} actualizado.")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
