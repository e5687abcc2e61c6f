"""
Menu Catalog

Static, read-only table of everything the restaurant sells. Loaded once at
import time and never mutated; every other service reads from here.

Also builds the plain-text grounding context that is sent to the
conversational voice agents.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional


class Category(str, Enum):
    """Menu sections."""
    HOOKAH = "hookah"
    SETS = "sets"
    APPETIZERS = "appetizers"
    HOT = "hot"
    SALADS = "salads"
    DESSERTS = "desserts"
    DRINKS = "drinks"


class Tag(str, Enum):
    """Dietary and occasion labels."""
    HALAL = "halal"
    NOT_SPICY = "not-spicy"
    NO_ALCOHOL = "no-alcohol"
    VEGAN = "vegan"
    FOR_HOOKAH = "for-hookah"
    SWEET = "sweet"
    NO_SUGAR = "no-sugar"


CATEGORY_LABELS = {
    Category.HOOKAH: "Кальяны",
    Category.SETS: "Сеты в центр",
    Category.APPETIZERS: "Закуски",
    Category.HOT: "Горячее",
    Category.SALADS: "Салаты",
    Category.DESSERTS: "Десерты",
    Category.DRINKS: "Напитки",
}

TAG_LABELS = {
    Tag.HALAL: "Халяль",
    Tag.NOT_SPICY: "Не острое",
    Tag.NO_ALCOHOL: "Без алкоголя",
    Tag.VEGAN: "Веган",
    Tag.FOR_HOOKAH: "Под кальян",
    Tag.SWEET: "Сладкое",
    Tag.NO_SUGAR: "Без сахара",
}


@dataclass(frozen=True)
class MenuItem:
    """Immutable catalog entry. Prices are whole tenge."""
    id: str
    name: str
    description: str
    price: int
    category: Category
    tags: frozenset = field(default_factory=frozenset)
    allergens: tuple = ()

    def has_tags(self, tags: Iterable[Tag]) -> bool:
        return all(tag in self.tags for tag in tags)


def _item(id, name, description, price, category, tags=(), allergens=()):
    return MenuItem(
        id=id,
        name=name,
        description=description,
        price=price,
        category=Category(category),
        tags=frozenset(Tag(t) for t in tags),
        allergens=tuple(allergens),
    )


# =============================================================================
# MENU TABLE
# =============================================================================

CATALOG: tuple[MenuItem, ...] = (
    # Кальяны
    _item("h1", "Классический кальян", "Табак на выбор, свежий уголь", 7000, "hookah", ["for-hookah"]),
    _item("h2", "Премиум кальян", "Авторский микс, ледяная колба", 9500, "hookah", ["for-hookah"]),
    _item("h3", "Фруктовый кальян", "На грейпфруте с мятой", 11000, "hookah", ["for-hookah"]),
    # Сеты в центр
    _item("s1", "Сет «Алматы»", "Хумус, бабагануш, лепёшки, овощная нарезка", 5500, "sets",
          ["halal", "not-spicy", "no-alcohol", "vegan"], ["глютен"]),
    _item("s2", "Сет «Мясной»", "Казы, жужук, конская колбаса, лепёшки", 8500, "sets",
          ["halal", "not-spicy"], ["глютен"]),
    _item("s3", "Сет «Сырный»", "Брынза, камамбер, чеддер, мёд, орехи", 7000, "sets",
          ["not-spicy", "no-alcohol"], ["молоко", "орехи"]),
    _item("s4", "Сет «Морской»", "Креветки, кальмар, мидии, лимон", 9500, "sets",
          ["not-spicy", "no-alcohol"], ["морепродукты"]),
    _item("s5", "Сет «Микс»", "Хумус, куриные крылья, сырные палочки", 6500, "sets",
          ["halal", "not-spicy"], ["глютен", "молоко"]),
    # Закуски
    _item("a1", "Хумус с лепёшкой", "Классический хумус с тёплой лепёшкой", 2200, "appetizers",
          ["halal", "vegan", "not-spicy", "no-alcohol"], ["глютен"]),
    _item("a2", "Брускетты с томатом", "3 шт., чиабатта, базилик, пармезан", 2800, "appetizers",
          ["not-spicy", "no-alcohol"], ["глютен", "молоко"]),
    _item("a3", "Куриные крылья BBQ", "6 крыльев, фирменный BBQ соус", 3200, "appetizers",
          ["halal"]),
    _item("a4", "Сырные палочки", "Моцарелла во фритюре, томатный дип", 2500, "appetizers",
          ["not-spicy", "no-alcohol"], ["молоко", "глютен"]),
    _item("a5", "Эдамаме", "С морской солью и чили хлопьями", 1800, "appetizers",
          ["vegan", "no-alcohol", "halal"], ["соя"]),
    _item("a6", "Начос с гуакамоле", "Кукурузные чипсы, гуакамоле, сальса", 2600, "appetizers",
          ["vegan", "not-spicy", "no-alcohol"]),
    # Горячее
    _item("g1", "Стейк рибай", "300 г, medium rare, овощи гриль", 8900, "hot",
          ["halal", "not-spicy"]),
    _item("g2", "Лосось на гриле", "250 г, спаржа, лимонный соус", 7500, "hot",
          ["not-spicy", "no-alcohol"], ["рыба"]),
    _item("g3", "Паста карбонара", "Спагетти, бекон, пармезан, яйцо", 4200, "hot",
          ["not-spicy"], ["глютен", "молоко", "яйцо"]),
    _item("g4", "Бургер классический", "Говядина 200 г, чеддер, овощи, картофель фри", 4500, "hot",
          ["halal"], ["глютен", "молоко"]),
    _item("g5", "Том Ям с креветками", "Острый тайский суп, грибы, лемонграсс", 4800, "hot",
          ["no-alcohol"], ["морепродукты"]),
    _item("g6", "Плов по-алматински", "Баранина, морковь, нут, специи", 3800, "hot",
          ["halal", "not-spicy", "no-alcohol"]),
    _item("g7", "Куриный шашлык", "4 шампура, маринад, лаваш, лук", 4200, "hot",
          ["halal", "not-spicy", "no-alcohol"], ["глютен"]),
    # Салаты
    _item("sl1", "Цезарь с курицей", "Романо, пармезан, гренки, соус цезарь", 3500, "salads",
          ["not-spicy"], ["глютен", "молоко", "яйцо"]),
    _item("sl2", "Греческий салат", "Огурцы, томаты, оливки, фета", 2800, "salads",
          ["not-spicy", "no-alcohol", "halal"], ["молоко"]),
    _item("sl3", "Салат с тунцом", "Тунец, авокадо, микрогрин, кунжут", 4200, "salads",
          ["not-spicy", "no-alcohol"], ["рыба"]),
    _item("sl4", "Овощной боул", "Киноа, авокадо, эдамаме, тахини", 3200, "salads",
          ["vegan", "not-spicy", "no-alcohol", "halal"], ["соя"]),
    _item("sl5", "Тёплый салат с говядиной", "Говядина, руккола, черри, бальзамик", 4500, "salads",
          ["halal", "not-spicy"]),
    # Десерты
    _item("d1", "Чизкейк Нью-Йорк", "Классический, ягодный соус", 2500, "desserts",
          ["not-spicy", "no-alcohol", "sweet"], ["молоко", "глютен", "яйцо"]),
    _item("d2", "Тирамису", "Маскарпоне, эспрессо, какао", 2800, "desserts",
          ["not-spicy", "sweet"], ["молоко", "глютен", "яйцо"]),
    _item("d3", "Панна-котта", "Ваниль, манго-маракуйя", 2200, "desserts",
          ["not-spicy", "no-alcohol", "sweet"], ["молоко"]),
    _item("d4", "Фруктовая тарелка", "Сезонные фрукты и ягоды", 3500, "desserts",
          ["vegan", "not-spicy", "no-alcohol", "no-sugar", "halal"]),
    _item("d5", "Шоколадный фондан", "Тёплый, с шариком мороженого", 3000, "desserts",
          ["not-spicy", "no-alcohol", "sweet"], ["молоко", "глютен", "яйцо"]),
    _item("d6", "Мороженое (3 шарика)", "Ваниль, шоколад, фисташка", 1800, "desserts",
          ["not-spicy", "no-alcohol", "sweet"], ["молоко", "орехи"]),
    # Напитки
    _item("n1", "Лимонад домашний", "Лимон, мята, тростниковый сахар", 1200, "drinks",
          ["no-alcohol", "halal", "for-hookah"]),
    _item("n2", "Морс облепиховый", "Облепиха, мёд", 1400, "drinks",
          ["no-alcohol", "halal", "for-hookah"]),
    _item("n3", "Айран", "Кисломолочный, охлаждённый", 800, "drinks",
          ["no-alcohol", "halal", "not-spicy"], ["молоко"]),
    _item("n4", "Капучино", "Двойной эспрессо, молочная пенка", 1500, "drinks",
          ["no-alcohol", "not-spicy"], ["молоко"]),
    _item("n5", "Чай зелёный (чайник)", "Улун с жасмином, 500 мл", 1200, "drinks",
          ["no-alcohol", "halal", "vegan", "no-sugar", "for-hookah"]),
    _item("n6", "Смузи манго-банан", "Свежие фрукты, йогурт", 1800, "drinks",
          ["no-alcohol", "sweet", "for-hookah"], ["молоко"]),
    _item("n7", "Кола 0.5 л", "Coca-Cola", 700, "drinks", ["no-alcohol"]),
    _item("n8", "Вода газ. 0.5 л", "Минеральная", 500, "drinks",
          ["no-alcohol", "halal", "vegan", "no-sugar"]),
    _item("n9", "Свежевыжатый апельсин", "300 мл, без сахара", 1600, "drinks",
          ["no-alcohol", "halal", "vegan", "no-sugar", "for-hookah"]),
    _item("n10", "Молочный коктейль", "Ваниль / шоколад / клубника", 1800, "drinks",
          ["no-alcohol", "sweet"], ["молоко"]),
)

_BY_ID = {item.id: item for item in CATALOG}


class UnknownMenuItem(KeyError):
    """Raised when an id is not present in the catalog."""


# =============================================================================
# LOOKUPS
# =============================================================================

def get_item(item_id: str) -> MenuItem:
    try:
        return _BY_ID[item_id]
    except KeyError:
        raise UnknownMenuItem(item_id) from None


def find_item(item_id: str) -> Optional[MenuItem]:
    return _BY_ID.get(item_id)


def items_in_category(category: Category, items: Iterable[MenuItem] = CATALOG) -> list[MenuItem]:
    return [item for item in items if item.category == category]


def filter_by_tags(items: Iterable[MenuItem], tags: Iterable[Tag]) -> list[MenuItem]:
    """
    Keep only items carrying every one of ``tags``.

    The AI flow passes its "exclude" list here, so asking for "halal" as an
    exclusion actually restricts the menu to halal dishes.
    """
    required = list(tags)
    if not required:
        return list(items)
    return [item for item in items if item.has_tags(required)]


def format_price(price: Optional[int]) -> str:
    """Render a tenge amount the way the menu shows it: ``30 000 ₸``."""
    if price is None:
        return "0 ₸"
    return f"{price:,}".replace(",", "\u00a0") + " ₸"


# =============================================================================
# VOICE AGENT CONTEXT
# =============================================================================

def build_food_info_context(items: Iterable[MenuItem] = CATALOG) -> str:
    """Dish reference sent to the food-info voice agent, one line per item."""
    lines = []
    for item in items:
        allergens = ", ".join(item.allergens) if item.allergens else "нет"
        lines.append(
            f"- {item.name} (id:{item.id}): {item.description}. "
            f"Аллергены: {allergens}. Категория: {CATEGORY_LABELS[item.category]}."
        )
    return "Справочник меню ресторана SmartMenu:\n" + "\n".join(lines)


MENU_PICKER_INSTRUCTIONS = """ВАЖНО: Когда пользователь просит подобрать меню (указывает бюджет, количество людей, предпочтения), ты ДОЛЖЕН в своём ответе включить блок:

<UI_ACTION>
{
  "action": "OPEN_MENU_PICKER",
  "title": "Подбор меню на [бюджет] для [кол-во] человек",
  "variants": [
    {
      "name": "Вариант A — Сбалансированный",
      "items": [{"id": "h1", "name": "Классический кальян", "price": 7000}, ...],
      "total": 25000
    },
    {
      "name": "Вариант B — Сытный",
      "items": [...],
      "total": 28000
    },
    {
      "name": "Вариант C — Лёгкий",
      "items": [...],
      "total": 22000
    }
  ]
}
</UI_ACTION>

Правила подбора:
- Создавай ровно 3 варианта (Сбалансированный, Сытный, Лёгкий)
- Итого каждого варианта должно быть 80-100% от бюджета
- Используй ТОЛЬКО id из меню выше
- Учитывай пожелания (халяль, без алкоголя, веган и т.д.)
- Отвечай на русском языке
- Блок <UI_ACTION> автоматически откроет модалку выбора на экране пользователя"""


def build_menu_picker_context(
    items: Iterable[MenuItem] = CATALOG,
    restaurant_name: str = "Aurora Lounge",
    city: str = "Алматы",
) -> str:
    """Prompt for the set-builder voice agent: grouped menu plus UI_ACTION rules."""
    grouped: dict[str, list[str]] = {}
    for item in items:
        label = CATEGORY_LABELS.get(item.category, item.category.value)
        grouped.setdefault(label, []).append(f"{item.name} (id:{item.id}, {item.price}₸)")
    menu_lines = "\n".join(f"{label}: {', '.join(entries)}" for label, entries in grouped.items())

    return (
        f"Ты — голосовой помощник ресторана {restaurant_name} в {city}. "
        "Помогаешь гостям подобрать заказ по бюджету и предпочтениям.\n\n"
        f"МЕНЮ РЕСТОРАНА:\n{menu_lines}\n\n"
        f"{MENU_PICKER_INSTRUCTIONS}"
    )
