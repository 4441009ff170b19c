"""Management command to audit card balances against their ledger."""

from django.core.management.base import BaseCommand, CommandError
from django.db.models import Q, Sum, Value
from django.db.models.functions import Coalesce

from pointsman.conf import pointsman_settings
from pointsman.models import Direction, LoyaltyCard
from pointsman.services.ledger import tier_for


class Command(BaseCommand):
    help = "Check every card's balance and totals against its point transactions"

    def add_arguments(self, parser):
        parser.add_argument(
            "--fix-tiers",
            action="store_true",
            help="Recompute card tiers from total_earned",
        )
        parser.add_argument(
            "--database",
            default=None,
            help="Database alias (defaults to POINTSMAN['DATABASE_ALIAS'])",
        )

    def handle(self, *args, **options):
        using = options["database"] or pointsman_settings.DATABASE_ALIAS
        cards = LoyaltyCard.objects.using(using).annotate(
            ledger_earned=Coalesce(
                Sum("transactions__amount", filter=Q(transactions__direction=Direction.EARN)),
                Value(0),
            ),
            ledger_redeemed=Coalesce(
                Sum("transactions__amount", filter=Q(transactions__direction=Direction.REDEEM)),
                Value(0),
            ),
        )

        checked = 0
        problems = []
        retiered = 0
        for card in cards.iterator():
            checked += 1
            ledger_balance = card.ledger_earned - card.ledger_redeemed
            if (
                card.total_earned != card.ledger_earned
                or card.total_redeemed != card.ledger_redeemed
                or card.points_balance != ledger_balance
            ):
                problems.append(
                    f"{card.card_number}: stored balance={card.points_balance} "
                    f"earned={card.total_earned} redeemed={card.total_redeemed}; "
                    f"ledger balance={ledger_balance} earned={card.ledger_earned} "
                    f"redeemed={card.ledger_redeemed}"
                )

            if options["fix_tiers"]:
                tier = tier_for(card.total_earned)
                if tier != card.tier:
                    LoyaltyCard.objects.using(using).filter(pk=card.pk).update(tier=tier)
                    retiered += 1

        for line in problems:
            self.stderr.write(line)

        if options["fix_tiers"]:
            self.stdout.write(f"Updated tier on {retiered} cards.")

        if problems:
            raise CommandError(f"{len(problems)} of {checked} cards disagree with their ledger.")

        self.stdout.write(self.style.SUCCESS(f"Checked {checked} cards, ledger consistent."))
