# -*- coding: utf-8 -*-
from trustnet.infra.db import db

from .appeal import ScoreAppeal
from .audit_log import TrustAuditLog
from .consent import Consent
from .erp import Purchase, Sale
from .insight import SharedInsight
from .metric import TrustMetric
from .participant import Participant
from .score_history import ScoreHistory
