#!/usr/bin/env python3
"""
Script to create admin accounts for the marketplace back-office
Usage: python create_admin.py
"""

import getpass
import sys
import os

# Add the backend directory to the Python path
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from database.connection import SessionLocal, create_tables
from services.auth import create_admin_user, get_user_by_email
from core.permissions import AdminRole, get_user_permission_groups
from models.user import User, UserRole

def prompt_admin_role() -> AdminRole:
    """Ask for one of the administrative roles"""
    roles = list(AdminRole)
    for index, role in enumerate(roles, start=1):
        groups = ", ".join(sorted(get_user_permission_groups(role)))
        print(f"{index:>2}. {role.value:<16} {groups}")

    while True:
        choice = input(f"Role (1-{len(roles)}): ").strip()
        if choice.isdigit() and 1 <= int(choice) <= len(roles):
            return roles[int(choice) - 1]
        print("❌ Invalid choice.")

def create_admin():
    """Create an admin account interactively"""
    print("🔧 Admin Account Creation")
    print("=" * 40)

    create_tables()
    db = SessionLocal()

    try:
        email = input("Email: ").strip()

        existing_user = get_user_by_email(db, email)
        if existing_user:
            print(f"❌ User with email {email} already exists (role: {existing_user.admin_role or existing_user.role.value})")
            return

        password = getpass.getpass("Password: ").strip()
        if len(password) < 8:
            print("❌ Password must be at least 8 characters long!")
            return

        first_name = input("First Name: ").strip()
        last_name = input("Last Name: ").strip()
        admin_role = prompt_admin_role()

        user = create_admin_user(
            db=db,
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            admin_role=admin_role
        )

        print("✅ Admin account created successfully!")
        print(f"📧 Email: {user.email}")
        print(f"🔑 Role: {user.admin_role}")
        print(f"🆔 ID: {user.id}")

    except ValueError as e:
        print(f"❌ {str(e)}")
    finally:
        db.close()

def list_admins():
    """List all admin accounts"""
    print("👥 Current Admin Accounts")
    print("=" * 40)

    create_tables()
    db = SessionLocal()

    try:
        admins = db.query(User).filter(User.role == UserRole.ADMIN).order_by(User.created_at).all()

        if not admins:
            print("No admin accounts found.")
            return

        for admin in admins:
            print(f"📧 {admin.email}")
            print(f"👤 {admin.first_name} {admin.last_name}")
            print(f"🔑 Role: {admin.admin_role}")
            print(f"🔍 Active: {admin.is_active}")
            print("-" * 30)
    finally:
        db.close()

def main():
    """Main function"""
    print("🚀 Admin Management")
    print("=" * 40)
    print("1. Create Admin Account")
    print("2. List Admin Accounts")
    print("3. Exit")

    while True:
        choice = input("\nSelect option (1-3): ").strip()

        if choice == "1":
            create_admin()
            break
        elif choice == "2":
            list_admins()
            break
        elif choice == "3":
            print("👋 Goodbye!")
            break
        else:
            print("❌ Invalid choice. Please select 1, 2, or 3.")

if __name__ == "__main__":
    main()
