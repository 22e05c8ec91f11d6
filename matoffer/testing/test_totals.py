from matoffer.app.pricing.catalog import PriceCatalog
from matoffer.app.pricing.discount import DiscountedPrice
from matoffer.app.pricing.models import Offer, OfferItem
from matoffer.app.pricing.totals import offer_summaries, partition, purchase_totals, rental_totals
from matoffer.app.services.offer_wizard import OfferWizard


def _item(price: float, quantity=1, purpose=None) -> OfferItem:
    return OfferItem(code="X", pricing=DiscountedPrice.fresh(price), quantity=quantity, purpose=purpose)


def test_four_week_total_is_weekly_times_four():
    for prices in ([4.03], [4.03, 3.21], [0.01, 0.02, 0.07], [12.345, 7.005]):
        totals = rental_totals([_item(p, quantity=3) for p in prices], "2")
        assert totals.four_week_total == totals.weekly_total * 4


def test_rental_totals_sum_quantities():
    totals = rental_totals([_item(4.03, 2), _item(3.21, 1)], "2")
    assert totals.total_items == 3
    assert totals.weekly_total == 11.27
    assert totals.season_four_week_total is None
    assert "season_four_week_total" not in totals.to_dict()


def test_empty_quantity_counts_as_zero():
    totals = purchase_totals([_item(100.0, None), _item(50.0, 2)])
    assert totals.total_items == 2
    assert totals.total_price == 100.0


def test_partition_by_offer_type():
    rental, bought = _item(4.0, purpose="najem"), _item(90.0, purpose="nakup")
    listed = _item(120.0)
    offer = Offer(offer_type="dodatna", rental_items=[rental, bought], purchase_items=[listed])
    parts = partition(offer)
    assert parts["rental"] == [rental]
    assert parts["purchase"] == [bought]

    offer.offer_type = "primerjava"
    assert partition(offer)["purchase"] == [listed, bought]

    offer.offer_type = "najem"
    assert partition(offer) == {"rental": [rental, bought], "purchase": []}


def test_summaries_only_for_relevant_sides():
    assert offer_summaries(Offer(offer_type="najem"))["purchase"] is None
    assert offer_summaries(Offer(offer_type="nakup"))["rental"] is None
    both = offer_summaries(Offer(offer_type="primerjava"))
    assert both["rental"] is not None and both["purchase"] is not None


def test_seasonal_period_totals():
    wizard = OfferWizard(PriceCatalog.builtin())
    wizard.set_offer_type("najem")
    seasonal = wizard.offer.rental_items[0]
    wizard.select_code(seasonal.id, "MBW1")
    wizard.set_quantity(seasonal.id, 2)
    wizard.toggle_seasonal(seasonal.id, True)
    plain = wizard.add_item("najem")
    wizard.select_code(plain.id, "ERM10R")

    rental = wizard.totals()["rental"]
    assert rental["weekly_total"] == 11.27
    # normal period: seasonal item at 2.48, plain item at its own price
    assert rental["normal_four_week_total"] == 32.68
    assert rental["season_four_week_total"] == 54.40
