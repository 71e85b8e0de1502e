import numpy as np
import pytest
from latticeic.initializer import FluctuationInitializer, InitializerState
from latticeic.exceptions import InvalidConfiguration
from latticeic.sampler import hermitian_violations


def full_spectrum(half, N):
    """Extend a (N, N, N//2+1) half spectrum to the full (N, N, N) spectrum by Hermitian symmetry."""
    full = np.zeros((N, N, N), dtype=np.complex128)
    nz = half.shape[2]
    full[:, :, :nz] = half
    for z in range(nz, N):
        for x in range(N):
            for y in range(N):
                full[x, y, z] = np.conj(half[(-x) % N, (-y) % N, N - z])
    return full


def test_initialize_populates_fields(params, make_pairs):
    phi, _ = make_pairs(params)
    initializer = FluctuationInitializer(params, phi)
    assert initializer.state is InitializerState.UNINITIALIZED

    initializer.initialize()

    assert initializer.state is InitializerState.INITIALIZED
    for field in (phi.value, phi.derivative):
        assert np.all(field.get_frequency_buffer() != 0)
        assert np.any(field.get_real_buffer() != 0)
        assert np.all(np.isfinite(field.get_real_buffer()))


def test_spectrum_is_hermitian(params, make_pairs):
    phi, _ = make_pairs(params)
    FluctuationInitializer(params, phi).initialize()

    N = params.N
    f_hat = np.asarray(phi.value.freq)
    for z in (0, N // 2):
        for x in range(N):
            for y in range(N):
                assert f_hat[(-x) % N, (-y) % N, z] == np.conj(f_hat[x, y, z])
    assert hermitian_violations(np.asarray(phi.derivative.freq)) == 0


def test_reproducible_with_fixed_seed(params, make_pairs):
    assert params.total_gridpoints == 64
    assert params.box_length == 1.0

    buffers = []
    for _ in range(2):
        phi, _ = make_pairs(params)
        FluctuationInitializer(params, phi).initialize()
        buffers.append((np.array(phi.value.freq), np.array(phi.derivative.freq)))

    assert np.array_equal(buffers[0][0], buffers[1][0])
    assert np.array_equal(buffers[0][1], buffers[1][1])


def test_independent_of_decomposition(params, make_pairs):
    params.update({'N': 8, 'box_length': 3.0})
    results = {}
    for decomposition in ('slab', 'pencil'):
        params.update({'decomposition': decomposition})
        phi, _ = make_pairs(params)
        FluctuationInitializer(params, phi).initialize()
        results[decomposition] = (np.array(phi.value.freq), np.array(phi.derivative.freq), np.array(phi.value.real))

    slab, pencil = results['slab'], results['pencil']
    assert np.array_equal(slab[0], pencil[0])
    assert np.array_equal(slab[1], pencil[1])
    np.testing.assert_allclose(slab[2], pencil[2], rtol=1e-12, atol=1e-12 * np.abs(slab[2]).max())


def test_different_seeds_differ(params, make_pairs):
    phi1, _ = make_pairs(params)
    FluctuationInitializer(params, phi1).initialize()

    params.update({'seed': 4321})
    phi2, _ = make_pairs(params)
    FluctuationInitializer(params, phi2).initialize()

    assert not np.array_equal(phi1.value.freq, phi2.value.freq)


def test_zero_mode_amplitude(params, make_pairs):
    phi, _ = make_pairs(params)
    initializer = FluctuationInitializer(params, phi)
    initializer.initialize()

    re = np.random.default_rng(params.seed).standard_normal((4, 4, 3))
    m_eff = params.mphi
    A = initializer.fluctuation_amplitude

    assert A == pytest.approx(64 / np.sqrt(2))
    assert phi.value.freq[0, 0, 0] == pytest.approx(A / np.sqrt(2 * m_eff) * re[0, 0, 0], rel=1e-12)
    assert phi.derivative.freq[0, 0, 0] == pytest.approx(A * np.sqrt(m_eff / 2) * re[0, 0, 0], rel=1e-12)


def test_real_space_is_inverse_transform(params, make_pairs):
    N = params.N
    phi, _ = make_pairs(params)
    FluctuationInitializer(params, phi).initialize()

    for field in (phi.value, phi.derivative):
        expected = np.fft.irfftn(np.asarray(field.freq), s=(N, N, N)) * N**3
        np.testing.assert_allclose(field.real, expected, rtol=1e-10, atol=1e-10 * np.abs(expected).max())

        full = full_spectrum(np.asarray(field.freq), N)
        u = np.fft.ifftn(full) * N**3
        assert np.abs(u.imag).max() <= 1e-10 * np.abs(u.real).max()
        np.testing.assert_allclose(u.real, field.real, rtol=1e-10, atol=1e-10 * np.abs(u.real).max())


def test_forward_transform_recovers_spectrum(params, make_pairs):
    phi, _ = make_pairs(params)
    FluctuationInitializer(params, phi).initialize()

    f_hat = np.array(phi.value.freq)
    phi.value.transform_to_frequency_space()
    np.testing.assert_allclose(phi.value.freq, f_hat, rtol=1e-10, atol=1e-10 * np.abs(f_hat).max())


def test_second_field(params, make_pairs):
    params.update({'enable_chi': True})
    phi, chi = make_pairs(params, with_chi=True)
    initializer = FluctuationInitializer(params, phi, chi)
    initializer.initialize()

    assert [name for name, _ in initializer.field_pairs()] == ['phi', 'chi']
    assert np.all(chi.value.freq != 0)
    assert not np.array_equal(chi.value.freq, phi.value.freq)
    # zero mode frequency is the chi mass
    ratio = chi.derivative.freq[0, 0, 0] / chi.value.freq[0, 0, 0]
    assert ratio.real == pytest.approx(params.mchi)


def test_second_field_optional(params, make_pairs):
    phi, _ = make_pairs(params)
    initializer = FluctuationInitializer(params, phi)
    assert [name for name, _ in initializer.field_pairs()] == ['phi']


def test_enable_chi_requires_fields(params, make_pairs):
    params.update({'enable_chi': True})
    phi, _ = make_pairs(params)
    with pytest.raises(InvalidConfiguration):
        FluctuationInitializer(params, phi)


@pytest.mark.parametrize("key, value", [
    ('box_length', -1.0),
    ('box_length', 0.0),
    ('reference_length', 0.0),
    ('rescale_A', -2.0),
    ('adot', np.inf),
])
def test_invalid_configuration(params, make_pairs, key, value):
    phi, _ = make_pairs(params)
    params.update({key: value})

    with pytest.raises(InvalidConfiguration):
        FluctuationInitializer(params, phi)
    assert np.all(phi.value.freq == 0)
    assert np.all(phi.value.real == 0)


def test_grid_mismatch(params, make_pairs):
    phi, _ = make_pairs(params)
    params.update({'N': 8})
    with pytest.raises(InvalidConfiguration):
        FluctuationInitializer(params, phi)


def test_repeated_initialize_redraws(params, make_pairs):
    phi, _ = make_pairs(params)
    initializer = FluctuationInitializer(params, phi)

    initializer.initialize()
    first = np.array(phi.value.freq)
    initializer.initialize()

    assert initializer.state is InitializerState.INITIALIZED
    assert not np.array_equal(first, phi.value.freq)
    assert hermitian_violations(np.asarray(phi.value.freq)) == 0


def test_tachyonic_effective_mass(params, make_pairs):
    # m_eff^2 = 1 - 2.25 * 10^2 is negative, modes with |n|^2 <= 5 are unstable
    params.update({'adot': 10.0})
    phi, _ = make_pairs(params)
    initializer = FluctuationInitializer(params, phi)

    m2_eff = initializer.model.effective_mass_squared('phi', params.adot)
    n_unstable = initializer.initialize_field(phi.value, phi.derivative, m2_eff)

    assert n_unstable > 0
    for field in (phi.value, phi.derivative):
        assert np.all(np.isfinite(field.freq))
        assert np.all(np.isfinite(field.real))
    assert phi.value.freq[0, 0, 0] == 0
    assert phi.value.freq[1, 0, 0] == 0
    assert phi.value.freq[2, 2, 2] != 0


def test_effective_mass_from_model(params, make_pairs):
    params.update({'model': 'phi4_coupled', 'mphi': 0.5, 'lambda_phi': 2.0, 'phi0': 1.0, 'adot': 0.2})
    phi, _ = make_pairs(params)
    FluctuationInitializer(params, phi).initialize()

    m2_eff = 0.5**2 + 3 * 2.0 - 2.25 * 0.2**2
    ratio = phi.derivative.freq[0, 0, 0] / phi.value.freq[0, 0, 0]
    assert ratio.real == pytest.approx(np.sqrt(m2_eff))


def test_explicit_generator(params, make_pairs):
    phi1, _ = make_pairs(params)
    FluctuationInitializer(params, phi1, rng=np.random.default_rng(99)).initialize()

    params.update({'seed': 99})
    phi2, _ = make_pairs(params)
    FluctuationInitializer(params, phi2).initialize()

    assert np.array_equal(phi1.value.freq, phi2.value.freq)
