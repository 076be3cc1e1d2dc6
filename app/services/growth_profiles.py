"""Static growth-profile registry — crop name → agronomic cadence parameters."""

from __future__ import annotations

from app.schemas.scheduling import CropGrowthProfile


def _profile(
	name: str,
	category: str,
	growth_days: int,
	watering: int,
	weeding: int,
	fertilizer: tuple[int, ...],
	pest_control: int,
	pesticides: tuple[str, ...],
	yield_per_area: float,
	optimal_temp: str,
	soils: tuple[str, ...],
) -> CropGrowthProfile:
	return CropGrowthProfile(
		name=name,
		category=category,
		growth_days=growth_days,
		watering_frequency_days=watering,
		weeding_frequency_days=weeding,
		fertilizer_schedule_days=fertilizer,
		pest_control_frequency_days=pest_control,
		pesticides=pesticides,
		yield_per_area=yield_per_area,
		optimal_temp_range=optimal_temp,
		compatible_soil_types=soils,
	)


# yield_per_area is kg per acre
_PROFILES: dict[str, CropGrowthProfile] = {
	profile.name: profile
	for profile in (
		_profile("Maize", "Cereal", 90, 7, 21, (21, 42, 63), 14,
			("Cypermethrin", "Lambda-cyhalothrin", "Imidacloprid"), 2500, "20-30°C", ("Loam", "Clay")),
		_profile("Wheat", "Cereal", 120, 12, 21, (28, 56), 21,
			("Mancozeb", "Propiconazole", "Chlorpyrifos"), 2000, "15-25°C", ("Loam", "Clay")),
		_profile("Rice", "Cereal", 105, 3, 14, (14, 35, 56), 10,
			("Carbofuran", "Fipronil", "Tricyclazole"), 3000, "25-35°C", ("Clay", "Silt")),
		_profile("Soybeans", "Legume", 75, 6, 14, (14, 35), 10,
			("Chlorpyrifos", "Quinalphos", "Thiamethoxam"), 1800, "20-30°C", ("Loam", "Sandy")),
		_profile("Beans", "Legume", 60, 5, 14, (14, 35), 10,
			("Dimethoate", "Malathion", "Cypermethrin"), 1500, "18-28°C", ("Loam", "Sandy")),
		_profile("Tomatoes", "Vegetable", 80, 1, 7, (14, 28, 42, 56), 7,
			("Mancozeb", "Chlorothalonil", "Imidacloprid", "Abamectin"), 8000, "20-30°C", ("Loam", "Sandy")),
		_profile("Potatoes", "Vegetable", 90, 5, 14, (21, 42), 10,
			("Mancozeb", "Metalaxyl", "Imidacloprid"), 6000, "15-25°C", ("Loam", "Sandy")),
		_profile("Onions", "Vegetable", 100, 4, 14, (21, 42, 63), 14,
			("Mancozeb", "Chlorpyrifos", "Thiamethoxam"), 5000, "15-25°C", ("Loam", "Sandy")),
		_profile("Cabbage", "Vegetable", 70, 3, 10, (14, 35, 49), 7,
			("Cypermethrin", "Chlorpyrifos", "Bacillus thuringiensis"), 7000, "15-25°C", ("Loam", "Clay")),
		_profile("Carrots", "Vegetable", 75, 3, 10, (21, 42), 14,
			("Chlorpyrifos", "Malathion"), 4500, "15-25°C", ("Sandy", "Loam")),
		_profile("Cotton", "Cash Crop", 150, 10, 21, (28, 56, 84), 10,
			("Cypermethrin", "Imidacloprid", "Profenofos"), 800, "25-35°C", ("Loam", "Clay")),
		_profile("Sugarcane", "Cash Crop", 365, 7, 28, (30, 60, 90, 120), 21,
			("Chlorpyrifos", "Imidacloprid", "Carbofuran"), 35000, "25-35°C", ("Loam", "Clay")),
		_profile("Coffee", "Cash Crop", 270, 7, 28, (60, 120, 180), 21,
			("Copper oxychloride", "Imidacloprid", "Chlorpyrifos"), 1200, "15-25°C", ("Loam", "Clay")),
		_profile("Tea", "Cash Crop", 180, 5, 21, (45, 90, 135), 14,
			("Copper oxychloride", "Quinalphos", "Imidacloprid"), 2000, "20-30°C", ("Loam", "Clay")),
		_profile("Sunflower", "Oilseed", 90, 7, 21, (21, 42), 14,
			("Chlorpyrifos", "Imidacloprid", "Cypermethrin"), 1500, "20-30°C", ("Loam", "Sandy")),
	)
}

_BY_LOWER_NAME: dict[str, CropGrowthProfile] = {name.lower(): profile for name, profile in _PROFILES.items()}


def lookup(name: str | None) -> CropGrowthProfile | None:
	"""Exact name first, then case-insensitive; unknown names yield ``None``."""
	if not name:
		return None
	exact = _PROFILES.get(name)
	if exact is not None:
		return exact
	return _BY_LOWER_NAME.get(name.strip().lower())


def list_profiles() -> list[CropGrowthProfile]:
	return [_PROFILES[name] for name in sorted(_PROFILES)]
