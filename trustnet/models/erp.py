# -*- coding: utf-8 -*-
"""
Read models over the ERP's transactional tables.

The ERP owns these tables; the engine maps only the columns it aggregates
and never writes to them outside of tests and seeding.
"""
import uuid

from sqlalchemy import Column, DateTime, String

from trustnet.infra.db import db

PAID = 'paid'
REFUNDED = 'refunded'
DELIVERED = 'delivered'
RETURNED = 'returned'


class Sale(db.Model):
    __tablename__ = 'sales'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    organization_id = Column(String(36), nullable=False, index=True)
    date = Column(DateTime, nullable=False)
    payment_status = Column(String(32), nullable=True)  # pending, paid, refunded
    delivery_status = Column(String(32), nullable=True)  # pending, delivered, returned


class Purchase(db.Model):
    __tablename__ = 'purchases'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    organization_id = Column(String(36), nullable=False, index=True)
    date = Column(DateTime, nullable=False)
    payment_status = Column(String(32), nullable=True)  # pending, paid
