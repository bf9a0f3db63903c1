#!/usr/bin/env python3
"""
Script para hacer a un usuario administrador
"""
import sys

from blogosphere.core.exceptions import UserNotFound
from blogosphere.db.session import SessionLocal
from blogosphere.users.service import UserService

def make_user_admin(email: str) -> bool:
    """Hace a un usuario administrador"""
    db = SessionLocal()
    try:
        user = UserService.set_role(db, email, "admin")
        print(f"✅ Usuario {user.email} ({user.username}) ahora es administrador")
        return True
    except UserNotFound as e:
        print(f"❌ {e}")
        return False
    finally:
        db.close()

if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Uso: python make_admin.py <email>")
        sys.exit(1)

    email = sys.argv[1]
    print(f"🔧 Haciendo administrador a: {email}")

    if make_user_admin(email):
        print("✅ Operación completada exitosamente")
    else:
        print("❌ La operación falló")
        sys.exit(1)
