import asyncio
import os
import sys
import argparse

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app.core.db import SessionLocal, init_models
from app.core.security import hash_pin
from app.modules.patients.repository import PatientAuthRepository, PatientRepository

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Create a patient, or reset the PIN of an existing one.")
    parser.add_argument("--cpf", required=True, help="11-digit CPF, digits only")
    parser.add_argument("--pin", required=True, help="4 to 6 digit PIN")
    parser.add_argument("--name", default="Paciente Teste")
    parser.add_argument("--phone", default=None)
    args = parser.parse_args(argv)
    if not (args.cpf.isdigit() and len(args.cpf) == 11):
        parser.error("--cpf must be exactly 11 digits")
    if not (args.pin.isdigit() and 4 <= len(args.pin) <= 6):
        parser.error("--pin must be 4 to 6 digits")
    return args

async def main(argv=None):
    """
    Seed a patient credential for local onboarding and manual login checks.
    """
    args = parse_args(argv)
    await init_models()

    async with SessionLocal() as db:
        existing = await PatientAuthRepository(db).find_by_cpf(args.cpf)
        patients = PatientRepository(db)
        if existing:
            print(f"Patient {args.cpf} already exists with ID: {existing.id}. Resetting PIN.")
            await patients.set_pin_hash(existing, hash_pin(args.pin))
        else:
            patient = await patients.create(
                full_name=args.name,
                cpf=args.cpf,
                phone=args.phone,
                pin_hash=hash_pin(args.pin),
            )
            print(f"Created patient {args.cpf} with ID: {patient.id}")
        await db.commit()

    print("Done.")

if __name__ == "__main__":
    asyncio.run(main())
