# strata/graphics/shaders/chunks.py
"""GLSL snippets shared by every generated material program."""

from __future__ import annotations

from strata.graphics.settings import ComposerSettings

VERTEX_SHADER = """\
in vec3 in_pos;
in vec3 in_normal;

uniform mat4 u_model;
uniform mat4 u_view_proj;

// Flat normals keep face detection stable across a voxel face
flat out vec3 v_flat_local_normal;
flat out vec3 v_flat_world_normal;
out vec3 v_local_position;
out vec3 v_world_position;

void main() {
    v_local_position = in_pos;
    v_flat_local_normal = in_normal;
    v_flat_world_normal = normalize((u_model * vec4(in_normal, 0.0)).xyz);

    vec4 world_position = u_model * vec4(in_pos, 1.0);
    v_world_position = world_position.xyz;

    gl_Position = u_view_proj * world_position;
}
"""

FRAGMENT_INPUTS = """\
flat in vec3 v_flat_local_normal;
flat in vec3 v_flat_world_normal;
in vec3 v_local_position;
in vec3 v_world_position;

out vec4 f_color;
"""

# Simplex 3D noise (Ashima Arts / Stefan Gustavson) and a bounded fBm
NOISE_FUNCTIONS = """\
vec4 permute(vec4 x) { return mod(((x * 34.0) + 1.0) * x, 289.0); }
vec4 taylor_inv_sqrt(vec4 r) { return 1.79284291400159 - 0.85373472095314 * r; }

float snoise(vec3 v) {
    const vec2 C = vec2(1.0 / 6.0, 1.0 / 3.0);
    const vec4 D = vec4(0.0, 0.5, 1.0, 2.0);

    vec3 i = floor(v + dot(v, C.yyy));
    vec3 x0 = v - i + dot(i, C.xxx);

    vec3 g = step(x0.yzx, x0.xyz);
    vec3 l = 1.0 - g;
    vec3 i1 = min(g.xyz, l.zxy);
    vec3 i2 = max(g.xyz, l.zxy);

    vec3 x1 = x0 - i1 + C.xxx;
    vec3 x2 = x0 - i2 + C.yyy;
    vec3 x3 = x0 - D.yyy;

    i = mod(i, 289.0);
    vec4 p = permute(permute(permute(
            i.z + vec4(0.0, i1.z, i2.z, 1.0))
            + i.y + vec4(0.0, i1.y, i2.y, 1.0))
            + i.x + vec4(0.0, i1.x, i2.x, 1.0));

    float n_ = 1.0 / 7.0;
    vec3 ns = n_ * D.wyz - D.xzx;

    vec4 j = p - 49.0 * floor(p * ns.z * ns.z);

    vec4 x_ = floor(j * ns.z);
    vec4 y_ = floor(j - 7.0 * x_);

    vec4 x = x_ * ns.x + ns.yyyy;
    vec4 y = y_ * ns.x + ns.yyyy;
    vec4 h = 1.0 - abs(x) - abs(y);

    vec4 b0 = vec4(x.xy, y.xy);
    vec4 b1 = vec4(x.zw, y.zw);

    vec4 s0 = floor(b0) * 2.0 + 1.0;
    vec4 s1 = floor(b1) * 2.0 + 1.0;
    vec4 sh = -step(h, vec4(0.0));

    vec4 a0 = b0.xzyw + s0.xzyw * sh.xxyy;
    vec4 a1 = b1.xzyw + s1.xzyw * sh.zzww;

    vec3 p0 = vec3(a0.xy, h.x);
    vec3 p1 = vec3(a0.zw, h.y);
    vec3 p2 = vec3(a1.xy, h.z);
    vec3 p3 = vec3(a1.zw, h.w);

    vec4 norm = taylor_inv_sqrt(vec4(dot(p0, p0), dot(p1, p1), dot(p2, p2), dot(p3, p3)));
    p0 *= norm.x;
    p1 *= norm.y;
    p2 *= norm.z;
    p3 *= norm.w;

    vec4 m = max(0.6 - vec4(dot(x0, x0), dot(x1, x1), dot(x2, x2), dot(x3, x3)), 0.0);
    m = m * m;
    return 42.0 * dot(m * m, vec4(dot(p0, x0), dot(p1, x1), dot(p2, x2), dot(p3, x3)));
}

float fbm(vec3 p, int octaves) {
    int count = clamp(octaves, 1, MAX_NOISE_OCTAVES);
    float value = 0.0;
    float amplitude = 0.5;
    float frequency = 1.0;
    for (int i = 0; i < MAX_NOISE_OCTAVES; i++) {
        if (i >= count) break;
        value += amplitude * snoise(p * frequency);
        amplitude *= 0.5;
        frequency *= 2.0;
    }
    return value;
}
"""

BLEND_FUNCTIONS = """\
vec3 blend_mix(vec3 base, vec3 layer, float opacity) {
    return mix(base, layer, opacity);
}

vec3 blend_replace(vec3 base, vec3 layer, float opacity) {
    return mix(base, layer, opacity);
}

vec3 blend_multiply(vec3 base, vec3 layer, float opacity) {
    return mix(base, base * layer, opacity);
}

vec3 blend_add(vec3 base, vec3 layer, float opacity) {
    return mix(base, min(base + layer, vec3(1.0)), opacity);
}

vec3 blend_screen(vec3 base, vec3 layer, float opacity) {
    return mix(base, vec3(1.0) - (vec3(1.0) - base) * (vec3(1.0) - layer), opacity);
}

vec3 blend_overlay(vec3 base, vec3 layer, float opacity) {
    vec3 low = 2.0 * base * layer;
    vec3 high = vec3(1.0) - 2.0 * (vec3(1.0) - base) * (vec3(1.0) - layer);
    vec3 result = mix(high, low, vec3(lessThan(base, vec3(0.5))));
    return mix(base, result, opacity);
}
"""

# Dominant axis of the local normal picks the projection plane, so 2D
# patterns stay glued to a face instead of sliding with rotation.
FACE_UV_FUNCTION = """\
vec2 face_uv(vec3 local_pos, vec3 local_normal) {
    vec3 n = abs(local_normal);
    if (n.y > n.x && n.y > n.z) {
        return local_pos.xz;
    }
    if (n.x > n.z) {
        return local_pos.zy;
    }
    return local_pos.xy;
}
"""

LIGHTING_FUNCTION = """\
vec3 calculate_lighting(vec3 albedo, vec3 normal, vec3 view_dir, float shadow) {
    vec3 ambient = max(u_ambient_color, vec3(AMBIENT_FLOOR)) * albedo;

    vec3 light_dir = normalize(u_light_direction);
    float n_dot_l = max(dot(normal, light_dir), 0.0);
    vec3 diffuse = n_dot_l * albedo * u_light_color * u_light_intensity;

    vec3 half_dir = normalize(light_dir + view_dir);
    float spec_power = mix(ROUGH_SPECULAR_POWER, SHINY_SPECULAR_POWER, 1.0 - u_roughness);
    float spec = pow(max(dot(normal, half_dir), 0.0), spec_power);
    vec3 spec_color = mix(vec3(DIELECTRIC_SPECULAR), albedo, u_metalness);
    vec3 specular = spec * spec_color * u_light_color * u_light_intensity
        * (1.0 - u_roughness) * SPECULAR_SCALE;

    // Fill light is diffuse only
    vec3 fill_dir = normalize(u_fill_light_direction);
    float fill_n_dot_l = max(dot(normal, fill_dir), 0.0);
    vec3 fill = fill_n_dot_l * albedo * u_fill_light_color * u_fill_light_intensity;

    return ambient + (diffuse + specular) * shadow + fill;
}
"""

SHADOW_FUNCTION = """\
float sample_shadow(vec4 shadow_coord) {
    vec3 proj = shadow_coord.xyz / shadow_coord.w;
    if (any(lessThan(proj, vec3(0.0))) || any(greaterThan(proj, vec3(1.0)))) {
        return 1.0;
    }

    float bias = abs(u_shadow_bias) + 0.001;
    vec2 texel = 1.0 / max(u_shadow_map_size, vec2(1.0));
    float lit = 0.0;
    for (int x = -SHADOW_PCF_RADIUS; x <= SHADOW_PCF_RADIUS; x++) {
        for (int y = -SHADOW_PCF_RADIUS; y <= SHADOW_PCF_RADIUS; y++) {
            float depth = texture(u_shadow_map, proj.xy + vec2(float(x), float(y)) * texel).r;
            lit += proj.z - bias > depth ? 0.0 : 1.0;
        }
    }
    float taps = float((2 * SHADOW_PCF_RADIUS + 1) * (2 * SHADOW_PCF_RADIUS + 1));
    return lit / taps;
}
"""


def glsl_float(value: float) -> str:
    """Format a float as a GLSL literal (always with a decimal point)."""
    text = repr(float(value))
    if "e" in text or "E" in text:
        text = f"{float(value):.9f}"
    if "." not in text:
        text += ".0"
    return text


def shading_constants(settings: ComposerSettings, *, max_octaves: int) -> str:
    shading = settings.shading
    lines = [
        f"const float AMBIENT_FLOOR = {glsl_float(settings.lighting.ambient_floor)};",
        f"const float ROUGH_SPECULAR_POWER = {glsl_float(shading.rough_specular_power)};",
        f"const float SHINY_SPECULAR_POWER = {glsl_float(shading.shiny_specular_power)};",
        f"const float DIELECTRIC_SPECULAR = {glsl_float(shading.dielectric_specular)};",
        f"const float SPECULAR_SCALE = {glsl_float(shading.specular_scale)};",
        f"const float CLEARCOAT_RIM_STRENGTH = {glsl_float(shading.clearcoat_rim_strength)};",
        f"const float CLEARCOAT_FRESNEL_POWER = {glsl_float(shading.clearcoat_fresnel_power)};",
        f"const int SHADOW_PCF_RADIUS = {int(shading.shadow_pcf_radius)};",
        f"const int MAX_NOISE_OCTAVES = {int(max_octaves)};",
    ]
    return "\n".join(lines) + "\n"
